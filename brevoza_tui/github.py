"""GitHub REST client implementing the host capabilities the core consumes.

Only the thin I/O lives here: each method performs one REST call and maps
non-2xx responses onto the error taxonomy in ``errors``. Authentication is
a bearer token obtained elsewhere.
"""

import base64
import logging
import threading
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .collections_config import ChangedFile, ChangeRequest, DirectoryEntry
from .errors import (
    Conflict,
    MergeBlocked,
    NotADirectory,
    NotFound,
    UpstreamFailure,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
CHANGE_REQUEST_STATES = ("open", "closed", "all")
RAW_MEDIA_TYPE = "application/vnd.github.raw"


class GitHubClient:
    """Minimal GitHub API wrapper over a ``requests.Session``."""

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        timeout_s: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            token: Installation or personal access token (optional for public reads)
            api_url: Base URL of the REST API
            timeout_s: Per-request timeout in seconds
            session: Pre-configured session (a new one is created if omitted)
        """
        self.api_url = api_url.rstrip("/")
        self.timeout_s = float(timeout_s)
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

        self._shared_session = session
        if session is not None:
            session.headers.update(self.headers)
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """The session for the calling thread.

        Content fetches run on a worker pool, so each thread gets its own
        session unless one was injected at construction.
        """
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self.headers)
            self._local.session = session
        return session

    # ====== Transport ======

    def _url(self, owner: str, repo: str, suffix: str) -> str:
        return f"{self.api_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/{suffix}"

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        conflict: type = Conflict,
        what: str = "resource",
        raw: bool = False,
    ) -> Any:
        logger.debug("%s %s params=%s", method, url, params)
        headers = {"Accept": RAW_MEDIA_TYPE} if raw else None
        try:
            resp = self.session.request(
                method, url, params=params, json=json, headers=headers, timeout=self.timeout_s
            )
        except requests.RequestException as e:
            raise UpstreamFailure(f"Request to {url} failed: {e}") from e

        if resp.status_code // 100 == 2:
            if raw:
                return resp.content
            if not resp.content:
                return {}
            try:
                return resp.json()
            except ValueError as e:
                raise UpstreamFailure(
                    f"Invalid JSON response from {url}: {e}", resp.status_code
                ) from e

        message = self._error_message(resp)
        if resp.status_code == 404:
            raise NotFound(f"{what} not found: {message}")
        if resp.status_code in (409, 422):
            raise conflict(f"{what} conflict: {message}")
        raise UpstreamFailure(
            f"HTTP {resp.status_code} for {url}: {message}", resp.status_code
        )

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        # Try to pull a useful error message out of JSON, but fall back to text.
        try:
            payload = resp.json() or {}
        except ValueError:
            return resp.text[:500]
        if isinstance(payload, dict):
            return str(payload.get("message") or payload)[:500]
        return str(payload)[:500]

    # ====== Repository contents ======

    def get_file_content(self, owner: str, repo: str, ref: str, path: str) -> bytes:
        """Return the raw bytes of a file at ``path`` on ``ref``.

        Files the contents API does not inline (over 1 MB) are fetched again
        with the raw media type.
        """
        url = self._url(owner, repo, f"contents/{quote(path.strip('/'))}")
        data = self._request("GET", url, params={"ref": ref}, what=f"file '{path}'")
        if isinstance(data, list) or data.get("type") != "file":
            raise NotFound(f"'{path}' is not a file")

        if data.get("encoding") != "base64":
            logger.debug("Fetching %s raw (encoding=%s)", path, data.get("encoding"))
            return self._request("GET", url, params={"ref": ref}, what=f"file '{path}'", raw=True)

        try:
            return base64.b64decode(data.get("content") or "")
        except ValueError as e:
            raise UpstreamFailure(f"Invalid base64 content for '{path}': {e}") from e

    def list_directory(
        self, owner: str, repo: str, ref: str, path: str
    ) -> List[DirectoryEntry]:
        """List the entries of a directory at ``path`` on ``ref``."""
        data = self._request(
            "GET",
            self._url(owner, repo, f"contents/{quote(path.strip('/'))}"),
            params={"ref": ref},
            what=f"directory '{path}'",
        )
        if not isinstance(data, list):
            raise NotADirectory(f"'{path}' is not a directory")
        return [
            DirectoryEntry(
                name=entry["name"],
                path=entry["path"],
                kind="dir" if entry.get("type") == "dir" else "file",
            )
            for entry in data
        ]

    def create_file(
        self,
        owner: str,
        repo: str,
        branch: str,
        path: str,
        content: bytes,
        message: str,
        sha: Optional[str] = None,
    ) -> None:
        """Create (or, when ``sha`` is given, update) a file on ``branch``."""
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": branch,
        }
        if sha:
            body["sha"] = sha
        self._request(
            "PUT",
            self._url(owner, repo, f"contents/{quote(path.strip('/'))}"),
            json=body,
            what=f"file '{path}'",
        )

    # ====== Refs ======

    def get_branch_head_commit(self, owner: str, repo: str, branch: str) -> str:
        data = self._request(
            "GET",
            self._url(owner, repo, f"git/ref/heads/{quote(branch)}"),
            what=f"branch '{branch}'",
        )
        return data["object"]["sha"]

    def create_branch(
        self, owner: str, repo: str, new_branch: str, from_commit: str
    ) -> None:
        self._request(
            "POST",
            self._url(owner, repo, "git/refs"),
            json={"ref": f"refs/heads/{new_branch}", "sha": from_commit},
            what=f"branch '{new_branch}'",
        )

    # ====== Pull requests ======

    def open_change_request(
        self, owner: str, repo: str, head: str, base: str, title: str, body: str
    ) -> ChangeRequest:
        data = self._request(
            "POST",
            self._url(owner, repo, "pulls"),
            json={"title": title, "head": head, "base": base, "body": body},
            what=f"pull request from '{head}'",
        )
        return _change_request_from_json(data)

    def get_change_request(self, owner: str, repo: str, number: int) -> ChangeRequest:
        data = self._request(
            "GET",
            self._url(owner, repo, f"pulls/{int(number)}"),
            what=f"pull request #{number}",
        )
        return _change_request_from_json(data)

    def list_change_requests(
        self, owner: str, repo: str, state: str = "open"
    ) -> List[ChangeRequest]:
        data = self._request(
            "GET",
            self._url(owner, repo, "pulls"),
            params={"state": state, "sort": "created", "direction": "desc", "per_page": 100},
            what="pull requests",
        )
        return [_change_request_from_json(item) for item in data]

    def list_change_request_files(
        self, owner: str, repo: str, number: int
    ) -> List[ChangedFile]:
        data = self._request(
            "GET",
            self._url(owner, repo, f"pulls/{int(number)}/files"),
            params={"per_page": 100},
            what=f"pull request #{number}",
        )
        return [
            ChangedFile(
                filename=item["filename"],
                status=item.get("status", ""),
                additions=item.get("additions", 0),
                deletions=item.get("deletions", 0),
                changes=item.get("changes", 0),
                patch=item.get("patch"),
            )
            for item in data
        ]

    def merge_change_request(self, owner: str, repo: str, number: int) -> bool:
        """Merge a pull request; returns the host's ``merged`` flag."""
        url = self._url(owner, repo, f"pulls/{int(number)}/merge")
        try:
            data = self._request(
                "PUT",
                url,
                json={"merge_method": "merge"},
                conflict=MergeBlocked,
                what=f"pull request #{number}",
            )
        except UpstreamFailure as e:
            # 405: not mergeable (conflicts or required checks)
            if e.status_code == 405:
                raise MergeBlocked(
                    f"Pull request #{number} cannot be merged. "
                    "Check if there are conflicts or required status checks."
                ) from e
            raise
        return bool(data.get("merged"))

    def close_change_request(self, owner: str, repo: str, number: int) -> None:
        self._request(
            "PATCH",
            self._url(owner, repo, f"pulls/{int(number)}"),
            json={"state": "closed"},
            what=f"pull request #{number}",
        )


def _change_request_from_json(data: Dict[str, Any]) -> ChangeRequest:
    merged = bool(data.get("merged") or data.get("merged_at"))
    state = data.get("state", "open")
    if state == "closed" and merged:
        state = "merged"
    try:
        return ChangeRequest(
            number=int(data["number"]),
            title=data.get("title", ""),
            url=data.get("html_url", ""),
            state=state,
            head=(data.get("head") or {}).get("ref", ""),
            base=(data.get("base") or {}).get("ref", ""),
            body=data.get("body"),
            author=(data.get("user") or {}).get("login"),
            created_at=data.get("created_at"),
            merged=merged,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise UpstreamFailure(f"Unexpected pull request payload: {e}") from e


