"""GitHub contents API as a remote snippet store."""

from __future__ import annotations

import base64
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx

from ..sync.protocol import RemoteArtifact
from ..sync.stores import (
    AuthorizationError,
    ContentTooLargeError,
    NotFoundError,
    RemoteStoreError,
    TransportError,
)

logger = logging.getLogger("snipsync.stores.github")

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0
DEFAULT_TOKEN_ENV = "SNIPSYNC_GITHUB_TOKEN"
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
USER_AGENT = "snipsync"

_REPO_PATTERNS = (
    re.compile(r"https://github\.com/([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+?)(?:\.git)?/?"),
    re.compile(r"([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)"),
)


def parse_repo(value: str) -> Tuple[str, str]:
    """Split ``owner/repo`` or a github.com URL into ``(owner, repo)``."""
    candidate = (value or "").strip()
    if not candidate:
        raise ValueError("Repository must not be empty")

    for pattern in _REPO_PATTERNS:
        match = pattern.fullmatch(candidate)
        if match:
            owner, repo = match.groups()
            if repo.endswith(".git"):
                repo = repo[: -len(".git")]
            return owner, repo

    raise ValueError(
        f"Unrecognized repository {value!r}; use https://github.com/owner/repo or owner/repo"
    )


@dataclass
class GitHubSettings:
    """Connection settings for the GitHub store."""

    repo: str = ""
    token_env: str = DEFAULT_TOKEN_ENV
    api_url: str = DEFAULT_API_URL
    branch: str = ""
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "GitHubSettings":
        raw = config.get("github", {}) if config else {}
        return cls(
            repo=str(raw.get("repo", "")),
            token_env=str(raw.get("token_env", DEFAULT_TOKEN_ENV)),
            api_url=str(raw.get("api_url", DEFAULT_API_URL)),
            branch=str(raw.get("branch", "") or ""),
            timeout=float(raw.get("timeout", DEFAULT_TIMEOUT)),
        )

    def resolve_token(self, env: Optional[Mapping[str, str]] = None) -> str:
        env_source = env if env is not None else os.environ
        return env_source.get(self.token_env, "")


class GitHubStore:
    """Remote store that keeps snippets in a GitHub repository.

    Every call goes through one ``httpx.AsyncClient`` with a request timeout,
    so the sync engine never waits on GitHub indefinitely.
    """

    def __init__(
        self,
        repo: str,
        token: str,
        api_url: str = DEFAULT_API_URL,
        branch: str = "",
        extension: str = ".css",
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.owner, self.repo = parse_repo(repo)
        self.branch = branch
        self.extension = extension
        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": USER_AGENT,
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: GitHubSettings,
        extension: str = ".css",
        env: Optional[Mapping[str, str]] = None,
    ) -> "GitHubStore":
        token = settings.resolve_token(env)
        if not token:
            raise AuthorizationError(f"No GitHub token found in ${settings.token_env}")
        return cls(
            repo=settings.repo,
            token=token,
            api_url=settings.api_url,
            branch=settings.branch,
            extension=extension,
            timeout=settings.timeout,
        )

    async def __aenter__(self) -> "GitHubStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def authenticate(self) -> bool:
        """Check that the token is accepted by GitHub."""
        try:
            await self._request("GET", "/user")
            return True
        except RemoteStoreError as e:
            logger.error("GitHub authentication failed: %s", e)
            return False

    async def list_artifacts(self, path: str = "") -> List[RemoteArtifact]:
        """List snippet files, descending into subdirectories."""
        response = await self._request("GET", self._contents_url(path), params=self._ref_params())
        data = response.json()
        items = data if isinstance(data, list) else [data]

        artifacts: List[RemoteArtifact] = []
        for item in items:
            if item.get("type") == "file" and item.get("name", "").endswith(self.extension):
                artifacts.append(
                    RemoteArtifact(
                        name=item["name"],
                        path=item["path"],
                        identity=item["sha"],
                        size=item.get("size", 0),
                        download_url=item.get("download_url"),
                    )
                )
            elif item.get("type") == "dir":
                artifacts.extend(await self.list_artifacts(item["path"]))

        return artifacts

    async def download_content(self, path: str) -> str:
        response = await self._request("GET", self._contents_url(path), params=self._ref_params())
        data = response.json()

        if data.get("content"):
            raw = base64.b64decode(re.sub(r"\s", "", data["content"]))
            _check_size(len(raw), path)
            return raw.decode("utf-8")

        if data.get("download_url"):
            # Files over 1 MB come back without inline content.
            download = await self._request("GET", data["download_url"])
            declared = download.headers.get("Content-Length")
            if declared and declared.isdigit():
                _check_size(int(declared), path)
            _check_size(len(download.content), path)
            return download.content.decode("utf-8")

        raise RemoteStoreError(f"No content available for {path}")

    async def create_or_update(self, path: str, content: str, message: str) -> bool:
        existing_sha = await self._file_sha(path)
        body: Dict[str, Any] = {
            "message": message or f"Update {path}",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if existing_sha:
            body["sha"] = existing_sha
        if self.branch:
            body["branch"] = self.branch

        await self._request("PUT", self._contents_url(path), json=body)
        logger.debug("%s %s", "Updated" if existing_sha else "Created", path)
        return True

    async def delete(self, path: str, message: Optional[str] = None) -> bool:
        existing_sha = await self._file_sha(path)
        if existing_sha is None:
            raise NotFoundError(f"File not found: {path}")

        body: Dict[str, Any] = {"message": message or f"Delete {path}", "sha": existing_sha}
        if self.branch:
            body["branch"] = self.branch

        await self._request("DELETE", self._contents_url(path), json=body)
        logger.debug("Deleted %s", path)
        return True

    async def _file_sha(self, path: str) -> Optional[str]:
        try:
            response = await self._request("GET", self._contents_url(path), params=self._ref_params())
        except NotFoundError:
            return None
        data = response.json()
        if isinstance(data, dict):
            return data.get("sha")
        return None

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{quote(path.strip('/'))}"

    def _ref_params(self) -> Optional[Dict[str, str]]:
        return {"ref": self.branch} if self.branch else None

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Send a request and translate failures into store errors."""
        try:
            response = await self._client.request(method, url, json=json, params=params)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timed out: {method} {url}") from e
        except httpx.RequestError as e:
            raise TransportError(f"Network error talking to GitHub: {e}") from e

        logger.debug("%s %s -> %d", method, url, response.status_code)

        status = response.status_code
        if status == 401:
            raise AuthorizationError("GitHub rejected the token; check that it is valid")
        if status == 403:
            raise AuthorizationError("Access forbidden: missing token scope or rate limit exceeded")
        if status == 404:
            raise NotFoundError(f"Repository or file not found: {url}")
        if response.is_error:
            raise RemoteStoreError(f"HTTP {status}: {_error_message(response)}")
        return response


def _check_size(size: int, path: str) -> None:
    if size > MAX_FILE_SIZE:
        raise ContentTooLargeError(
            f"{path} is {size / 1024 / 1024:.1f} MB; the limit is {MAX_FILE_SIZE // 1024 // 1024} MB"
        )


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase


__all__ = ["GitHubStore", "GitHubSettings", "parse_repo", "MAX_FILE_SIZE"]
