# secrets_backend/main.py
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from secrets_backend.api.auth_github import router as github_auth_router
from secrets_backend.api.github_routes import router as github_routes_router
from secrets_backend.core.config import settings
from secrets_backend.core.db import Base, engine
from secrets_backend.core.errors import ConfigurationError, GitHubAPIError, InvalidPublicKey
from secrets_backend.crypto.token_vault import get_token_vault

import secrets_backend.models  # noqa: F401  (register tables)

logger = logging.getLogger("secrets_backend")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # A missing ENCRYPTION_KEY stops startup instead of failing on the first login
    get_token_vault()
    # Create DB tables (simple auto-create)
    Base.metadata.create_all(bind=engine)
    logger.info("Startup complete")
    yield


app = FastAPI(title="GitHub Secrets Dashboard", lifespan=lifespan)

# Include routers
app.include_router(github_auth_router)
app.include_router(github_routes_router)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
        status_code=422,
    )


@app.exception_handler(GitHubAPIError)
async def github_error_handler(request: Request, exc: GitHubAPIError):
    status = 404 if exc.status_code == 404 else 502
    return JSONResponse({"error": str(exc)}, status_code=status)


@app.exception_handler(InvalidPublicKey)
async def invalid_public_key_handler(request: Request, exc: InvalidPublicKey):
    return JSONResponse({"error": f"Repository public key is unusable: {exc}"}, status_code=502)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error: %s", exc)
    return JSONResponse({"error": "Server is misconfigured"}, status_code=500)


@app.get("/health")
async def health():
    return {"status": "ok"}


if settings.CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def run():
    """Serve the app with uvicorn (`secrets-dashboard` console script)."""
    uvicorn.run("secrets_backend.main:app", host=settings.HOST, port=settings.PORT)
