# github.py
import base64
from typing import Any, Dict, List, Optional

import httpx

from .settings import Settings


class GitHubClient:
    """
    Thin async wrapper over the GitHub REST v3 endpoints the pipeline needs.

    Every call raises httpx.HTTPStatusError on a non-2xx answer; callers map
    that to their own error type. Use as an async context manager so the
    underlying connection pool is closed when the run ends.
    """

    def __init__(self, settings: Settings):
        self.headers = {
            "Authorization": f"token {settings.GITHUB_TOKEN}",
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self._client = httpx.AsyncClient(
            base_url=settings.GITHUB_API_BASE,
            headers=self.headers,
            timeout=settings.GITHUB_TIMEOUT_SECONDS,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Dict[str, Any]:
        resp = await self._client.request(method, path, json=json)
        resp.raise_for_status()
        if not resp.content:
            return {}
        return resp.json()

    # --- identity / repos ---
    async def get_authenticated_user(self) -> Dict[str, Any]:
        return await self._request("GET", "/user")

    async def create_repo(self, name: str, description: str) -> Dict[str, Any]:
        payload = {
            "name": name,
            "description": description,
            "private": False,
            "auto_init": True,
            "license_template": "mit",
        }
        return await self._request("POST", "/user/repos", json=payload)

    # --- git data ---
    async def get_ref(self, owner: str, repo: str, branch: str) -> Dict[str, Any]:
        return await self._request("GET", f"/repos/{owner}/{repo}/git/ref/heads/{branch}")

    async def get_commit(self, owner: str, repo: str, sha: str) -> Dict[str, Any]:
        return await self._request("GET", f"/repos/{owner}/{repo}/git/commits/{sha}")

    async def create_blob(self, owner: str, repo: str, content: str) -> Dict[str, Any]:
        payload = {
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "encoding": "base64",
        }
        return await self._request("POST", f"/repos/{owner}/{repo}/git/blobs", json=payload)

    async def create_tree(self, owner: str, repo: str, tree: List[Dict[str, str]], base_tree: str) -> Dict[str, Any]:
        payload = {"tree": tree, "base_tree": base_tree}
        return await self._request("POST", f"/repos/{owner}/{repo}/git/trees", json=payload)

    async def create_commit(self, owner: str, repo: str, message: str, tree: str, parents: List[str]) -> Dict[str, Any]:
        payload = {"message": message, "tree": tree, "parents": parents}
        return await self._request("POST", f"/repos/{owner}/{repo}/git/commits", json=payload)

    async def update_ref(self, owner: str, repo: str, branch: str, sha: str) -> Dict[str, Any]:
        payload = {"sha": sha, "force": False}
        return await self._request("PATCH", f"/repos/{owner}/{repo}/git/refs/heads/{branch}", json=payload)

    # --- pages ---
    async def create_pages_site(self, owner: str, repo: str, branch: str, path: str = "/") -> Dict[str, Any]:
        payload = {"source": {"branch": branch, "path": path}}
        return await self._request("POST", f"/repos/{owner}/{repo}/pages", json=payload)

    async def get_pages_site(self, owner: str, repo: str) -> Dict[str, Any]:
        return await self._request("GET", f"/repos/{owner}/{repo}/pages")
