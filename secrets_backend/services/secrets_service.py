# secrets_backend/services/secrets_service.py
import asyncio
import logging
import re
from typing import Iterable, Optional

from pydantic import BaseModel, SecretStr, field_validator

from secrets_backend.crypto.sealer import seal
from secrets_backend.github_client import GitHubClient

logger = logging.getLogger("secrets_backend.secrets")

# GitHub: alphanumerics or underscores, no leading digit, no GITHUB_ prefix
_SECRET_NAME_RE = re.compile(r"^[A-Z_][A-Z0-9_]*$")


def normalize_secret_name(name: str) -> str:
    name = (name or "").strip().upper()
    if not _SECRET_NAME_RE.match(name):
        raise ValueError(
            "Secret names may only contain letters, digits and underscores "
            "and must not start with a digit"
        )
    if name.startswith("GITHUB_"):
        raise ValueError("Secret names must not start with GITHUB_")
    return name


class SecretEntry(BaseModel):
    name: str
    value: SecretStr

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return normalize_secret_name(v)


class RepoRef(BaseModel):
    owner: str
    repo: str


class CopyResult(BaseModel):
    owner: str
    repo: str
    ok: bool
    error: Optional[str] = None


def _raise_first_failure(results: list, action: str, owner: str, repo: str) -> None:
    """Raise the first error once every concurrent call has finished."""
    failures = [r for r in results if isinstance(r, BaseException)]
    if not failures:
        return
    logger.warning(
        "%d of %d secret %s(s) failed for %s/%s", len(failures), len(results), action, owner, repo
    )
    raise failures[0]


async def put_secrets(client: GitHubClient, owner: str, repo: str, entries: Iterable[SecretEntry]) -> None:
    """Seal and write secrets to one repository.

    The public key is fetched once for this batch. Writes run concurrently and
    each one is independent on GitHub's side.
    """
    entries = list(entries)
    public_key = await client.get_repo_public_key(owner, repo)
    key_id = public_key["key_id"]

    async def _write(entry: SecretEntry):
        encrypted_value = seal(entry.value.get_secret_value(), public_key["key"])
        await client.create_or_update_secret(owner, repo, entry.name, encrypted_value, key_id)

    results = await asyncio.gather(*(_write(e) for e in entries), return_exceptions=True)
    _raise_first_failure(results, "write", owner, repo)
    logger.info("Wrote %d secret(s) to %s/%s", len(entries), owner, repo)


async def delete_secrets(client: GitHubClient, owner: str, repo: str, names: Iterable[str]) -> None:
    names = list(names)
    results = await asyncio.gather(
        *(client.delete_secret(owner, repo, n) for n in names), return_exceptions=True
    )
    _raise_first_failure(results, "delete", owner, repo)
    logger.info("Deleted %d secret(s) from %s/%s", len(names), owner, repo)


async def copy_secrets(
    client: GitHubClient, targets: Iterable[RepoRef], entries: Iterable[SecretEntry]
) -> list[CopyResult]:
    """Write the same secrets to several repositories.

    Each target gets its own public key. A failing repository is reported in
    its result and does not stop the others.
    """
    entries = list(entries)
    targets = list(targets)

    async def _copy(target: RepoRef) -> CopyResult:
        try:
            await put_secrets(client, target.owner, target.repo, entries)
        except Exception as err:
            logger.warning("Copy to %s/%s failed: %s", target.owner, target.repo, type(err).__name__)
            return CopyResult(owner=target.owner, repo=target.repo, ok=False, error=str(err))
        return CopyResult(owner=target.owner, repo=target.repo, ok=True)

    return list(await asyncio.gather(*(_copy(t) for t in targets)))
