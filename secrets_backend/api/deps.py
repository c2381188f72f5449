# secrets_backend/api/deps.py
import logging
from typing import AsyncIterator

import httpx
from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session as DBSession

from secrets_backend.core.config import settings
from secrets_backend.core.db import get_db
from secrets_backend.core.errors import AuthenticationFailure, MalformedEnvelope
from secrets_backend.crypto.token_vault import TokenVault, get_token_vault
from secrets_backend.github_client import GitHubClient
from secrets_backend.services.sessions import (
    SESSION_DURATION,
    AuthenticatedSession,
    destroy_session,
    validate_session,
)

logger = logging.getLogger("secrets_backend.auth")


def get_vault() -> TokenVault:
    return get_token_vault()


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=30.0) as client:
        yield client


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_id,
        max_age=int(SESSION_DURATION.total_seconds()),
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )


def delete_session_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )


def clear_session_cookie_header() -> str:
    response = Response()
    delete_session_cookie(response)
    return response.headers["set-cookie"]


def get_optional_auth(
    request: Request,
    db: DBSession = Depends(get_db),
    vault: TokenVault = Depends(get_vault),
) -> AuthenticatedSession | None:
    session_id = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not session_id:
        return None
    try:
        return validate_session(db, session_id, vault)
    except (AuthenticationFailure, MalformedEnvelope):
        # stored token is unreadable under the current key; force a new login
        logger.error("Stored GitHub token could not be decrypted, revoking session")
        destroy_session(db, session_id)
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"set-cookie": clear_session_cookie_header()},
        )


def get_current_auth(
    auth: AuthenticatedSession | None = Depends(get_optional_auth),
) -> AuthenticatedSession:
    if auth is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return auth


def get_github_client(
    auth: AuthenticatedSession = Depends(get_current_auth),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> GitHubClient:
    return GitHubClient(auth.user.github_token.get_secret_value(), client=http)
