# secrets_backend/api/github_routes.py
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator

from secrets_backend.api.deps import get_current_auth, get_github_client
from secrets_backend.github_client import GitHubClient
from secrets_backend.services import secrets_service
from secrets_backend.services.secrets_service import (
    CopyResult,
    RepoRef,
    SecretEntry,
    normalize_secret_name,
)
from secrets_backend.services.sessions import AuthenticatedSession

router = APIRouter(prefix="/api/github", tags=["github"])


# ----- Pydantic schemas -----

class SecretsPut(BaseModel):
    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    secrets: list[SecretEntry] = Field(min_length=1)


class SecretsDelete(BaseModel):
    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    names: list[str] = Field(min_length=1)

    @field_validator("names")
    @classmethod
    def validate_names(cls, v: list[str]) -> list[str]:
        return [normalize_secret_name(n) for n in v]


class SecretsCopy(BaseModel):
    targets: list[RepoRef] = Field(min_length=1)
    secrets: list[SecretEntry] = Field(min_length=1)


class CopyOut(BaseModel):
    results: list[CopyResult]


# ----- Routes -----

@router.get("/repos")
async def list_repos(
    page: int = Query(1, ge=1),
    client: GitHubClient = Depends(get_github_client),
):
    repos = await client.list_repos(page=page)

    # Simplify response
    simplified = [
        {
            "id": r["id"],
            "name": r["name"],
            "full_name": r["full_name"],
            "owner": {
                "login": r["owner"]["login"],
                "avatar_url": r["owner"].get("avatar_url"),
            },
            "private": r["private"],
            "updated_at": r.get("updated_at"),
            "html_url": r.get("html_url"),
        }
        for r in repos
    ]
    return {"repos": simplified}


@router.get("/repos/search")
async def search_repos(
    q: str = "",
    auth: AuthenticatedSession = Depends(get_current_auth),
    client: GitHubClient = Depends(get_github_client),
):
    if not q.strip():
        return {"repos": []}
    repos = await client.search_repos(q.strip(), auth.user.username)
    return {"repos": repos}


@router.get("/secrets")
async def list_secrets(
    owner: str = Query(..., min_length=1),
    repo: str = Query(..., min_length=1),
    client: GitHubClient = Depends(get_github_client),
):
    return await client.list_repo_secrets(owner, repo)


@router.put("/secrets")
async def put_secrets(payload: SecretsPut, client: GitHubClient = Depends(get_github_client)):
    await secrets_service.put_secrets(client, payload.owner, payload.repo, payload.secrets)
    return {"ok": True}


@router.delete("/secrets")
async def delete_secrets(payload: SecretsDelete, client: GitHubClient = Depends(get_github_client)):
    await secrets_service.delete_secrets(client, payload.owner, payload.repo, payload.names)
    return {"ok": True}


@router.post("/secrets/copy", response_model=CopyOut)
async def copy_secrets(payload: SecretsCopy, client: GitHubClient = Depends(get_github_client)):
    results = await secrets_service.copy_secrets(client, payload.targets, payload.secrets)
    return CopyOut(results=results)
