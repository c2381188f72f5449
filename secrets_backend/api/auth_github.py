# secrets_backend/api/auth_github.py
import logging
import secrets
import urllib.parse

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session as DBSession

from secrets_backend.api.deps import (
    delete_session_cookie,
    get_http_client,
    get_optional_auth,
    get_vault,
    set_session_cookie,
)
from secrets_backend.core.config import settings
from secrets_backend.core.db import get_db
from secrets_backend.crypto.token_vault import TokenVault
from secrets_backend.github_client import (
    GITHUB_OAUTH_AUTHORIZE_URL,
    GitHubClient,
    exchange_code_for_token,
)
from secrets_backend.services.sessions import (
    AuthenticatedSession,
    create_session,
    destroy_session,
)
from secrets_backend.services.users import upsert_user

logger = logging.getLogger("secrets_backend.auth")

router = APIRouter(prefix="/api/auth", tags=["auth"])

STATE_COOKIE = "oauth_state"
STATE_MAX_AGE = 600  # 10 minutes


def _redirect_uri(request: Request) -> str:
    return settings.GITHUB_OAUTH_CALLBACK_URL or str(request.url_for("github_callback"))


@router.get("/github")
def github_login(request: Request):
    if not settings.GITHUB_CLIENT_ID:
        raise HTTPException(status_code=500, detail="GITHUB_CLIENT_ID not configured")

    # 1. Generate random state token (protects against CSRF), kept in a cookie
    state = secrets.token_hex(16)

    # 2. Build GitHub authorization URL
    params = {
        "client_id": settings.GITHUB_CLIENT_ID,
        "redirect_uri": _redirect_uri(request),
        "scope": settings.GITHUB_OAUTH_SCOPES,
        "state": state,
    }
    url = GITHUB_OAUTH_AUTHORIZE_URL + "?" + urllib.parse.urlencode(params)

    # 3. Redirect the user to GitHub OAuth
    response = RedirectResponse(url, status_code=302)
    response.set_cookie(
        key=STATE_COOKIE,
        value=state,
        max_age=STATE_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )
    return response


@router.get("/github/callback", name="github_callback")
async def github_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    db: DBSession = Depends(get_db),
    vault: TokenVault = Depends(get_vault),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    # 1. Validate state against the cookie set by /github
    stored_state = request.cookies.get(STATE_COOKIE)
    if not code or not state or not stored_state:
        raise HTTPException(status_code=400, detail="Invalid OAuth state")
    # compare bytes; compare_digest rejects non-ASCII str
    if not secrets.compare_digest(state.encode("utf-8"), stored_state.encode("utf-8")):
        raise HTTPException(status_code=400, detail="Invalid OAuth state")

    # 2. Exchange code for access_token
    token_data = await exchange_code_for_token(
        code,
        settings.GITHUB_CLIENT_ID,
        settings.GITHUB_CLIENT_SECRET,
        redirect_uri=_redirect_uri(request),
        client=http,
    )
    access_token = token_data.get("access_token")
    if not access_token:
        logger.warning("GitHub token exchange failed: %s", token_data.get("error"))
        raise HTTPException(status_code=400, detail="Failed to get access token")

    # 3. Use access_token to fetch user info from GitHub API
    github_user = await GitHubClient(access_token, client=http).get_user()

    # 4. Store user + encrypted token, open a session
    user = upsert_user(
        db,
        github_id=github_user["id"],
        username=github_user["login"],
        avatar_url=github_user.get("avatar_url"),
        access_token=access_token,
        vault=vault,
    )
    session = create_session(db, user.id)

    response = RedirectResponse(url=settings.FRONTEND_URL, status_code=302)
    set_session_cookie(response, session.id)
    response.delete_cookie(STATE_COOKIE, httponly=True, samesite="lax", secure=settings.SESSION_COOKIE_SECURE)
    return response


@router.post("/logout")
def logout(request: Request, db: DBSession = Depends(get_db)):
    session_id = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if session_id:
        destroy_session(db, session_id)

    response = RedirectResponse(url="/login", status_code=302)
    delete_session_cookie(response)
    return response


@router.get("/me")
def me(auth: AuthenticatedSession | None = Depends(get_optional_auth)):
    if auth is None:
        return JSONResponse({"user": None}, status_code=401)
    return {
        "user": {
            "id": auth.user.id,
            "username": auth.user.username,
            "avatar_url": auth.user.avatar_url,
        }
    }
