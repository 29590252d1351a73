import threading

import pytest

from gitnotebook.core.errors import ErrorKind
from gitnotebook.settings import PLACEHOLDER_TEXT
from gitnotebook.sync.workflow import SyncWorkflow, WorkflowState

from conftest import GOOD_TOKEN


@pytest.fixture
def authed(api, workflow):
    api.put_file("notes/Welcome.md", "# Welcome")
    outcome = workflow.authenticate(GOOD_TOKEN)
    assert outcome.ok, outcome.message
    return workflow


# ───────────────────────── authenticate / logout ─────────────────────────

def test_authenticate_lists_directory(api, workflow):
    api.put_file("notes/a.md", "A")
    api.put_file("notes/b.md", "B")
    api.put_file("notes/pic.png", "binary-ish")

    outcome = workflow.authenticate(GOOD_TOKEN)

    assert outcome.ok
    assert outcome.value.login == "alice"
    assert workflow.state is WorkflowState.NO_NOTE_OPEN
    assert workflow.directory.ids == ["a", "b"]


def test_rejected_credential_stays_unauthenticated(api, workflow):
    api.put_file("notes/a.md", "A")

    outcome = workflow.authenticate("ghp_wrong")

    assert not outcome.ok
    assert outcome.kind is ErrorKind.AUTH
    assert workflow.state is WorkflowState.UNAUTHENTICATED
    assert workflow.session.credential is None
    assert workflow.identity is None
    assert len(workflow.directory) == 0
    assert api.calls == [("GET", "/user")]


def test_empty_credential_is_auth_error(api, workflow):
    outcome = workflow.authenticate("   ")
    assert outcome.kind is ErrorKind.AUTH
    assert api.calls == []


def test_non_ascii_credential_is_auth_error(api, workflow):
    outcome = workflow.authenticate("ghp_“token”")

    assert outcome.kind is ErrorKind.AUTH
    assert workflow.state is WorkflowState.UNAUTHENTICATED
    assert api.calls == []


def test_forbidden_listing_after_login_is_not_an_auth_failure(config):
    import httpx

    from gitnotebook.store.client import RemoteStoreClient
    from conftest import FakeContentsApi

    api = FakeContentsApi()

    def handler(request):
        if request.url.path.startswith("/repos/"):
            return httpx.Response(403, json={"message": "Resource not accessible by personal access token"})
        return api.handle(request)

    wf = SyncWorkflow(
        config,
        client_factory=lambda token: RemoteStoreClient(config, token, transport=httpx.MockTransport(handler)),
    )

    outcome = wf.authenticate(GOOD_TOKEN)

    assert outcome.kind is ErrorKind.TRANSPORT
    assert "Signed in as alice" in outcome.message
    assert wf.session.authenticated
    assert wf.state is WorkflowState.NO_NOTE_OPEN


def test_logout_discards_session_state(authed):
    assert authed.open_note("Welcome").ok

    assert authed.logout().ok

    assert authed.state is WorkflowState.UNAUTHENTICATED
    assert authed.session.credential is None
    assert authed.identity is None
    assert authed.buffer is None
    assert len(authed.directory) == 0


def test_operations_need_a_session(api, workflow):
    for outcome in (
        workflow.open_note("a"),
        workflow.create_note("a"),
        workflow.refresh_directory(),
        workflow.save_note(),
    ):
        assert outcome.kind is ErrorKind.PRECONDITION
    assert api.calls == []


# ───────────────────────── bootstrap ─────────────────────────

def test_missing_notes_path_bootstraps_once(api, workflow):
    outcome = workflow.authenticate(GOOD_TOKEN)

    assert outcome.ok
    assert api.writes() == [("PUT", "/repos/alice/notebook/contents/notes/README.md")]
    assert api.text("notes/README.md") == PLACEHOLDER_TEXT
    assert workflow.directory.ids == ["README"]

    again = workflow.refresh_directory()
    assert again.ok
    assert again.value == ["README"]
    assert len(api.writes()) == 1


def test_notes_path_vanishing_later_is_surfaced(api, authed):
    api.files.clear()
    outcome = authed.refresh_directory()
    assert outcome.kind is ErrorKind.NOT_FOUND
    assert api.writes() == []


# ───────────────────────── open / clear ─────────────────────────

def test_open_note_populates_buffer(api, authed):
    outcome = authed.open_note("Welcome")
    assert outcome.ok
    assert authed.state is WorkflowState.NOTE_OPEN
    assert authed.buffer.note_id == "Welcome"
    assert authed.buffer.text == "# Welcome"


def test_open_discards_unsaved_edits_of_previous_note(api, authed):
    api.put_file("notes/Other.md", "other text")
    authed.open_note("Welcome")
    authed.edit("unsaved draft")

    assert authed.open_note("Other").ok

    assert authed.buffer.note_id == "Other"
    assert authed.buffer.text == "other text"
    assert "unsaved draft" not in authed.buffer.text
    # nothing was written back
    assert api.text("notes/Welcome.md") == "# Welcome"
    assert api.writes() == []


def test_open_missing_note_keeps_current_buffer(authed):
    authed.open_note("Welcome")
    authed.edit("draft")

    outcome = authed.open_note("Nope")

    assert outcome.kind is ErrorKind.NOT_FOUND
    assert authed.buffer.note_id == "Welcome"
    assert authed.buffer.text == "draft"


def test_open_oversized_note_fails_instead_of_opening_empty(config):
    import httpx

    from gitnotebook.store.client import RemoteStoreClient
    from conftest import FakeContentsApi

    api = FakeContentsApi()
    api.put_file("notes/Big.md", "x" * 64)

    def handler(request):
        if request.method == "GET" and request.url.path.endswith("/notes/Big.md"):
            body = {"type": "file", "name": "Big.md", "path": "notes/Big.md", "sha": api.sha("notes/Big.md"),
                    "size": 2_000_000, "encoding": "none", "content": ""}
            return httpx.Response(200, json=body)
        return api.handle(request)

    wf = SyncWorkflow(
        config,
        client_factory=lambda token: RemoteStoreClient(config, token, transport=httpx.MockTransport(handler)),
    )
    assert wf.authenticate(GOOD_TOKEN).ok

    outcome = wf.open_note("Big")

    assert outcome.kind is ErrorKind.DECODE
    assert wf.buffer is None
    assert wf.save_note().kind is ErrorKind.PRECONDITION
    assert api.writes() == []


def test_clear_selection(authed):
    authed.open_note("Welcome")
    assert authed.clear_selection().ok
    assert authed.buffer is None
    assert authed.state is WorkflowState.NO_NOTE_OPEN


def test_edit_without_open_note_raises(authed):
    from gitnotebook.core.errors import PreconditionFailed

    with pytest.raises(PreconditionFailed):
        authed.edit("text")


# ───────────────────────── create ─────────────────────────

def test_create_then_open_returns_exact_content(api, authed):
    created = authed.create_note("Foo", "bar")
    assert created.ok
    assert authed.buffer.note_id == "Foo"
    assert "Foo" in authed.directory

    opened = authed.open_note("Foo")
    assert opened.ok
    assert opened.value.text == "bar"
    assert api.text("notes/Foo.md") == "bar"


def test_create_uses_default_template_and_commit_message(api, authed):
    assert authed.create_note("Ideas").ok
    assert api.text("notes/Ideas.md") == "# Ideas\n\nStart writing here..."
    assert api.put_bodies[-1]["message"] == "Create Ideas.md"
    assert api.put_bodies[-1]["branch"] == "main"
    assert "sha" not in api.put_bodies[-1]


def test_create_existing_note_is_conflict(api, authed):
    outcome = authed.create_note("Welcome", "overwrite?")
    assert outcome.kind is ErrorKind.CONFLICT
    assert api.text("notes/Welcome.md") == "# Welcome"


def test_create_rejects_unusable_name(api, authed):
    outcome = authed.create_note("   ")
    assert outcome.kind is ErrorKind.PRECONDITION
    assert api.writes() == []


def test_create_normalizes_slashes(api, authed):
    assert authed.create_note("a/b", "x").ok
    assert api.text("notes/a-b.md") == "x"
    assert authed.buffer.note_id == "a-b"


# ───────────────────────── save ─────────────────────────

def test_save_reads_fresh_sha_then_writes(api, authed):
    authed.open_note("Welcome")
    authed.edit("# Welcome\n\nedited")
    api.calls.clear()

    outcome = authed.save_note()

    assert outcome.ok
    assert api.calls == [
        ("GET", "/repos/alice/notebook/contents/notes/Welcome.md"),
        ("PUT", "/repos/alice/notebook/contents/notes/Welcome.md"),
    ]
    assert api.text("notes/Welcome.md") == "# Welcome\n\nedited"
    assert outcome.value.sha == api.sha("notes/Welcome.md")
    assert not authed.buffer.dirty


def test_save_unicode_content(api, authed):
    authed.open_note("Welcome")
    authed.edit("Ünïcødé ✓ 日本語")
    assert authed.save_note().ok
    assert api.text("notes/Welcome.md") == "Ünïcødé ✓ 日本語"


def test_save_conflict_keeps_buffer(api, authed):
    authed.open_note("Welcome")
    authed.edit("my edits")
    api.write_after_next_read("notes/Welcome.md", "someone else's edits")

    outcome = authed.save_note()

    assert outcome.kind is ErrorKind.CONFLICT
    assert authed.buffer.text == "my edits"
    assert authed.buffer.dirty
    assert api.text("notes/Welcome.md") == "someone else's edits"


def test_save_after_remote_change_uses_current_sha(api, authed):
    authed.open_note("Welcome")
    api.put_file("notes/Welcome.md", "changed remotely before save")
    authed.edit("mine")

    # the pre-save read picks up the current version tag, so the write is accepted
    assert authed.save_note().ok
    assert api.text("notes/Welcome.md") == "mine"


def test_save_without_open_note_issues_no_calls(api, authed):
    api.calls.clear()
    outcome = authed.save_note()
    assert outcome.kind is ErrorKind.PRECONDITION
    assert api.calls == []


def test_save_of_deleted_note_is_not_found(api, authed):
    authed.open_note("Welcome")
    authed.edit("draft")
    del api.files["notes/Welcome.md"]

    outcome = authed.save_note()

    assert outcome.kind is ErrorKind.NOT_FOUND
    assert authed.buffer.text == "draft"


def test_save_transport_failure_keeps_buffer(config):
    import httpx

    from gitnotebook.store.client import RemoteStoreClient
    from conftest import FakeContentsApi

    api = FakeContentsApi()
    api.put_file("notes/a.md", "A")
    down = {"value": False}

    def handler(request):
        if down["value"]:
            raise httpx.ConnectError("offline", request=request)
        return api.handle(request)

    wf = SyncWorkflow(
        config,
        client_factory=lambda token: RemoteStoreClient(config, token, transport=httpx.MockTransport(handler)),
    )
    assert wf.authenticate(GOOD_TOKEN).ok
    assert wf.open_note("a").ok
    wf.edit("offline edit")
    down["value"] = True

    outcome = wf.save_note()

    assert outcome.kind is ErrorKind.TRANSPORT
    assert wf.buffer.text == "offline edit"


# ───────────────────────── serialization ─────────────────────────

def test_second_operation_while_busy_is_rejected(config):
    import httpx

    from gitnotebook.store.client import RemoteStoreClient
    from conftest import FakeContentsApi

    api = FakeContentsApi()
    api.put_file("notes/a.md", "A")
    entered = threading.Event()
    release = threading.Event()

    def handler(request):
        if request.method == "PUT":
            entered.set()
            release.wait(timeout=5)
        return api.handle(request)

    wf = SyncWorkflow(
        config,
        client_factory=lambda token: RemoteStoreClient(config, token, transport=httpx.MockTransport(handler)),
    )
    assert wf.authenticate(GOOD_TOKEN).ok
    assert wf.open_note("a").ok
    wf.edit("first")

    results = {}
    t = threading.Thread(target=lambda: results.setdefault("save", wf.save_note()))
    t.start()
    assert entered.wait(timeout=5)

    assert wf.busy
    second = wf.save_note()
    assert second.kind is ErrorKind.BUSY

    release.set()
    t.join(timeout=5)
    assert results["save"].ok
    assert not wf.busy
    assert len(api.writes()) == 1
