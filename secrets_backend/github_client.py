# secrets_backend/github_client.py
import logging
from typing import Optional

import httpx

from secrets_backend.core.errors import GitHubAPIError

logger = logging.getLogger("secrets_backend.github")

GITHUB_API = "https://api.github.com"
GITHUB_OAUTH_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_OAUTH_TOKEN_URL = "https://github.com/login/oauth/access_token"

REPO_AFFILIATION = "owner,collaborator,organization_member"


class GitHubClient:
    def __init__(self, access_token: str, client: Optional[httpx.AsyncClient] = None):
        # Standard base URL for GitHub API
        self.base_url = GITHUB_API

        # If caller passed an AsyncClient, reuse it; otherwise use ad-hoc clients.
        self.client = client
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github+json",
        }

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Internal helper that uses either the provided client or a temporary one."""
        url = f"{self.base_url}{path}"
        if self.client:
            resp = await self.client.request(method, url, headers=self.headers, **kwargs)
        else:
            async with httpx.AsyncClient(headers=self.headers) as client:
                resp = await client.request(method, url, **kwargs)
        if resp.is_error:
            # Surface GitHub's error message for easier debugging
            try:
                body = resp.json()
            except ValueError:
                body = None
            err = (body.get("message") if isinstance(body, dict) else None) or resp.text
            logger.warning("GitHub %s %s failed: %s", method, path, resp.status_code)
            raise GitHubAPIError(resp.status_code, err)
        return resp

    async def get_user(self) -> dict:
        resp = await self._request("GET", "/user")
        return resp.json()

    async def list_repos(self, page: int = 1, per_page: int = 30) -> list[dict]:
        params = {
            "sort": "updated",
            "per_page": per_page,
            "page": page,
            "affiliation": REPO_AFFILIATION,
        }
        resp = await self._request("GET", "/user/repos", params=params)
        return resp.json()

    async def search_repos(self, query: str, login: str, per_page: int = 30) -> list[dict]:
        """Search the user's repositories by name."""
        params = {"q": f"{query} user:{login} fork:true", "per_page": per_page}
        resp = await self._request("GET", "/search/repositories", params=params)
        return resp.json().get("items", [])

    async def list_repo_secrets(self, owner: str, repo: str) -> dict:
        resp = await self._request("GET", f"/repos/{owner}/{repo}/actions/secrets")
        return resp.json()

    async def get_repo_public_key(self, owner: str, repo: str) -> dict:
        """Current Actions public key: ``{"key_id": ..., "key": <base64>}``."""
        resp = await self._request("GET", f"/repos/{owner}/{repo}/actions/secrets/public-key")
        return resp.json()

    async def create_or_update_secret(
        self, owner: str, repo: str, name: str, encrypted_value: str, key_id: str
    ) -> None:
        payload = {"encrypted_value": encrypted_value, "key_id": key_id}
        await self._request("PUT", f"/repos/{owner}/{repo}/actions/secrets/{name}", json=payload)

    async def delete_secret(self, owner: str, repo: str, name: str) -> None:
        await self._request("DELETE", f"/repos/{owner}/{repo}/actions/secrets/{name}")


async def exchange_code_for_token(
    code: str,
    client_id: str,
    client_secret: str,
    redirect_uri: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> dict:
    """Trade an OAuth ``code`` for GitHub's token response."""
    data = {
        "client_id": client_id,
        "client_secret": client_secret,
        "code": code,
    }
    if redirect_uri:
        data["redirect_uri"] = redirect_uri
    headers = {"Accept": "application/json"}

    if client:
        resp = await client.post(GITHUB_OAUTH_TOKEN_URL, data=data, headers=headers)
    else:
        async with httpx.AsyncClient(headers=headers) as ad_hoc:
            resp = await ad_hoc.post(GITHUB_OAUTH_TOKEN_URL, data=data)
    if resp.is_error:
        raise GitHubAPIError(resp.status_code, resp.text)
    return resp.json()
