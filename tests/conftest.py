import base64
import hashlib
import json
import os
import sys

import httpx
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from gitnotebook.settings import StoreConfig
from gitnotebook.store.client import RemoteStoreClient
from gitnotebook.sync.workflow import SyncWorkflow

GOOD_TOKEN = "ghp_good"
OWNER_REPO = "alice/notebook"


class FakeContentsApi:
    """
    In-memory stand-in for the GitHub contents API of one repository.

    files: path -> (text, sha). Every write gets a new sha; PUT with a stale
    sha answers 409, PUT without sha on an existing path answers 422.
    """

    def __init__(self, *, token=GOOD_TOKEN, owner_repo=OWNER_REPO, login="alice"):
        self.token = token
        self.owner_repo = owner_repo
        self.login = login
        self.files = {}
        self.calls = []
        self.put_bodies = []
        self._rev = 0
        self._after_read = {}

    # ── helpers for tests ──

    def put_file(self, path, text):
        self._rev += 1
        sha = hashlib.sha1(f"{path}:{self._rev}:{text}".encode("utf-8")).hexdigest()
        self.files[path] = (text, sha)
        return sha

    def text(self, path):
        return self.files[path][0]

    def sha(self, path):
        return self.files[path][1]

    def write_after_next_read(self, path, text):
        """Simulate someone else committing right after our next GET of path."""
        self._after_read[path] = text

    def writes(self):
        return [c for c in self.calls if c[0] == "PUT"]

    def transport(self):
        return httpx.MockTransport(self.handle)

    # ── request handling ──

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path))

        if request.headers.get("Authorization") != f"token {self.token}":
            return httpx.Response(401, json={"message": "Bad credentials"})

        if path == "/user" and request.method == "GET":
            return httpx.Response(200, json={"login": self.login, "name": "Alice"})

        prefix = f"/repos/{self.owner_repo}/contents/"
        if not path.startswith(prefix):
            return httpx.Response(404, json={"message": "Not Found"})
        repo_path = path[len(prefix):].strip("/")

        if request.method == "GET":
            return self._get(repo_path)
        if request.method == "PUT":
            body = json.loads(request.content)
            self.put_bodies.append(body)
            return self._put(repo_path, body)
        return httpx.Response(405, json={"message": "Method Not Allowed"})

    def _get(self, repo_path):
        if repo_path in self.files:
            text, sha = self.files[repo_path]
            raw = base64.b64encode(text.encode("utf-8")).decode("ascii")
            # GitHub wraps base64 at 60 columns
            wrapped = "\n".join(raw[i:i + 60] for i in range(0, len(raw), 60))
            body = {
                "type": "file",
                "name": repo_path.rsplit("/", 1)[-1],
                "path": repo_path,
                "sha": sha,
                "encoding": "base64",
                "content": wrapped + "\n",
            }
            if repo_path in self._after_read:
                self.put_file(repo_path, self._after_read.pop(repo_path))
            return httpx.Response(200, json=body)

        children = []
        for p, (_, sha) in sorted(self.files.items()):
            if p.startswith(repo_path + "/") and "/" not in p[len(repo_path) + 1:]:
                children.append({"type": "file", "name": p.rsplit("/", 1)[-1], "path": p, "sha": sha})
        if children:
            return httpx.Response(200, json=children)
        return httpx.Response(404, json={"message": "Not Found"})

    def _put(self, repo_path, body):
        text = base64.b64decode(body["content"]).decode("utf-8")
        sha = body.get("sha")
        if repo_path in self.files:
            if sha is None:
                return httpx.Response(422, json={"message": "Invalid request.\n\n\"sha\" wasn't supplied."})
            if sha != self.sha(repo_path):
                return httpx.Response(409, json={"message": f"{repo_path} does not match {sha}"})
            status = 200
        else:
            if sha is not None:
                return httpx.Response(404, json={"message": "Not Found"})
            status = 201
        new_sha = self.put_file(repo_path, text)
        return httpx.Response(
            status,
            json={"content": {"name": repo_path.rsplit("/", 1)[-1], "path": repo_path, "sha": new_sha}},
        )


@pytest.fixture
def api():
    return FakeContentsApi()


@pytest.fixture
def config():
    return StoreConfig(owner_repo=OWNER_REPO, branch="main", notes_path="notes", api_url="https://api.test")


@pytest.fixture
def make_client(api, config):
    clients = []

    def _make(token=GOOD_TOKEN):
        client = RemoteStoreClient(config, token, transport=api.transport())
        clients.append(client)
        return client

    yield _make
    for c in clients:
        c.close()


@pytest.fixture
def workflow(make_client, config):
    return SyncWorkflow(config, client_factory=make_client)
