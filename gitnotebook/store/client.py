"""GitHub contents API client: list / read / create / update of single files."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from gitnotebook.core.encoding import decode, encode
from gitnotebook.core.errors import AuthError, Conflict, DecodeError, NotFound, TransportError
from gitnotebook.core.models import DirectoryEntry, Identity, NoteFile
from gitnotebook.logging_setup import log
from gitnotebook.settings import HTTP_TIMEOUT_S, StoreConfig


class RemoteStoreClient:
    """
    Thin typed wrapper over the contents API of one repository/branch.

    Every request carries ``Authorization: token <credential>``.
    Failures are raised as AuthError / NotFound / Conflict / TransportError /
    DecodeError; nothing is retried here.
    """

    def __init__(
        self,
        config: StoreConfig,
        token: str,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = HTTP_TIMEOUT_S,
    ):
        if not token:
            raise AuthError("No credential supplied")
        # header values must be printable ASCII
        if not token.isascii() or not token.isprintable():
            raise AuthError("Credential contains characters that cannot be sent (non-ASCII or control)")
        self.config = config
        self._http = httpx.Client(
            base_url=config.api_url,
            headers={
                "Authorization": f"token {token}",
                "Accept": "application/vnd.github+json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "RemoteStoreClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ───────────────────────── operations ─────────────────────────

    def fetch_identity(self) -> Identity:
        data = self._request("GET", "/user")
        if not isinstance(data, dict) or not data.get("login"):
            raise TransportError("Identity response has no login", path="/user")
        return Identity(login=str(data["login"]), name=data.get("name"))

    def list_files(self, path: str) -> list[DirectoryEntry]:
        data = self._request("GET", self._contents_url(path), params={"ref": self.config.branch}, path=path)
        if not isinstance(data, list):
            raise TransportError(f"Not a directory: {path}", path=path)

        entries = []
        for item in data:
            if not isinstance(item, dict) or "name" not in item:
                raise TransportError(f"Malformed directory entry under {path}", path=path)
            entries.append(
                DirectoryEntry(
                    name=str(item["name"]),
                    path=str(item.get("path") or f"{path}/{item['name']}"),
                    type=str(item.get("type") or "file"),
                    sha=item.get("sha"),
                )
            )
        log.debug("list_files: path=%s entries=%d", path, len(entries))
        return entries

    def read_file(self, path: str) -> NoteFile:
        data = self._request("GET", self._contents_url(path), params={"ref": self.config.branch}, path=path)
        if not isinstance(data, dict) or data.get("type", "file") != "file":
            raise TransportError(f"Not a file: {path}", path=path)
        if "content" not in data or not data.get("sha"):
            raise TransportError(f"File response without content/sha: {path}", path=path)
        # files over 1 MB come back with encoding "none" and empty content
        encoding = data.get("encoding", "base64")
        if encoding != "base64":
            raise DecodeError(f"Unsupported content encoding {encoding!r} for {path}", path=path)
        if not data["content"] and data.get("size", 0):
            raise DecodeError(f"Content of {path} was not included in the response", path=path)

        note = NoteFile(
            name=str(data.get("name") or path.rsplit("/", 1)[-1]),
            path=str(data.get("path") or path),
            content=decode(data["content"] or ""),
            sha=str(data["sha"]),
        )
        log.debug("read_file: path=%s sha=%s", path, note.sha)
        return note

    def create_file(self, path: str, content: str, message: str) -> NoteFile:
        return self._put(path, content, message, sha=None)

    def update_file(self, path: str, content: str, sha: str, message: str) -> NoteFile:
        if not sha:
            raise ValueError("update_file requires the current sha")
        return self._put(path, content, message, sha=sha)

    # ───────────────────────── internal ─────────────────────────

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.config.owner_repo}/contents/{quote(path.strip('/'), safe='/')}"

    def _put(self, path: str, content: str, message: str, *, sha: str | None) -> NoteFile:
        body: dict[str, Any] = {
            "message": message,
            "content": encode(content),
            "branch": self.config.branch,
        }
        if sha is not None:
            body["sha"] = sha

        data = self._request("PUT", self._contents_url(path), json=body, path=path)
        info = data.get("content") if isinstance(data, dict) else None
        if not isinstance(info, dict) or not info.get("sha"):
            raise TransportError(f"Write response without new sha: {path}", path=path)

        note = NoteFile(
            name=str(info.get("name") or path.rsplit("/", 1)[-1]),
            path=str(info.get("path") or path),
            content=content,
            sha=str(info["sha"]),
        )
        log.info("%s: path=%s sha=%s", "update_file" if sha else "create_file", path, note.sha)
        return note

    def _request(self, method: str, url: str, *, path: str | None = None, **kwargs) -> Any:
        where = path or url
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            log.warning("%s %s failed: %s", method, where, e)
            raise TransportError(f"{method} {where}: {e}", path=path) from e
        return self._handle_response(method, response, path=path)

    def _handle_response(self, method: str, response: httpx.Response, *, path: str | None) -> Any:
        status = response.status_code
        where = path or response.request.url.path

        if _is_rate_limited(response):
            raise TransportError(
                f"Rate limited on {where} ({status}): {_error_message(response)}", path=path, status=status
            )
        if status in (401, 403):
            raise AuthError(
                f"Credential rejected ({status}): {_error_message(response)}", path=path, status=status
            )
        if status == 404:
            raise NotFound(f"Not found: {where}", path=path, status=status)
        if method == "PUT" and (status == 409 or (status == 422 and "sha" in _error_message(response))):
            raise Conflict(
                f"Version conflict on {where}: {_error_message(response)}", path=path, status=status
            )
        if status >= 400:
            raise TransportError(
                f"{method} {where} -> {status}: {_error_message(response)}", path=path, status=status
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {where}", path=path, status=status) from e


def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    if response.status_code != 403:
        return False
    return response.headers.get("x-ratelimit-remaining") == "0" or "retry-after" in response.headers


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase or str(response.status_code)
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase or str(response.status_code)
