"""Shared fixtures: in-memory database, token vault and a fake GitHub API."""
import base64
import json
import os
import re

import httpx
import pytest
from nacl import public
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import secrets_backend.models  # noqa: F401
from secrets_backend.core.db import Base
from secrets_backend.crypto.token_vault import TokenVault


class FakeGitHub:
    """Just enough of api.github.com for the dashboard, backed by dicts.

    Each repository gets its own Curve25519 keypair so tests can open the
    sealed boxes written to it.
    """

    def __init__(self):
        self.user = {"id": 4242, "login": "octocat", "avatar_url": "https://avatars.example/octocat"}
        self.access_token = "gho_from_oauth"
        self.repos = [
            {
                "id": 1,
                "name": "hello",
                "full_name": "octocat/hello",
                "owner": {"login": "octocat", "avatar_url": "https://avatars.example/octocat"},
                "private": False,
                "updated_at": "2026-01-01T00:00:00Z",
                "html_url": "https://github.com/octocat/hello",
            }
        ]
        self.keys: dict[str, public.PrivateKey] = {}
        self.secrets: dict[str, dict[str, bytes]] = {}
        self.missing: set[str] = set()
        self.bad_keys: set[str] = set()
        self.requests: list[httpx.Request] = []

    def private_key(self, full_name: str) -> public.PrivateKey:
        if full_name not in self.keys:
            self.keys[full_name] = public.PrivateKey.generate()
        return self.keys[full_name]

    def key_id(self, full_name: str) -> str:
        return f"kid-{full_name}"

    def opened(self, full_name: str, name: str) -> str:
        box = public.SealedBox(self.private_key(full_name))
        return box.decrypt(self.secrets[full_name][name]).decode("utf-8")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == "github.com" and path == "/login/oauth/access_token":
            return httpx.Response(200, json={"access_token": self.access_token, "token_type": "bearer"})

        if path == "/user":
            return httpx.Response(200, json=self.user)
        if path == "/user/repos":
            return httpx.Response(200, json=self.repos)
        if path == "/search/repositories":
            return httpx.Response(200, json={"total_count": len(self.repos), "items": self.repos})

        m = re.match(r"^/repos/([^/]+)/([^/]+)/actions/secrets(?:/(.+))?$", path)
        if m:
            full_name = f"{m.group(1)}/{m.group(2)}"
            if full_name in self.missing:
                return httpx.Response(404, json={"message": "Not Found"})
            name = m.group(3)
            stored = self.secrets.setdefault(full_name, {})
            if name is None:
                items = [{"name": n, "created_at": "", "updated_at": ""} for n in sorted(stored)]
                return httpx.Response(200, json={"total_count": len(items), "secrets": items})
            if name == "public-key":
                key = self.private_key(full_name).public_key.encode()
                if full_name in self.bad_keys:
                    key = key[:16]
                return httpx.Response(
                    200,
                    json={"key_id": self.key_id(full_name), "key": base64.b64encode(key).decode()},
                )
            if request.method == "PUT":
                body = json.loads(request.content)
                if body["key_id"] != self.key_id(full_name):
                    return httpx.Response(422, json={"message": "Bad key_id"})
                stored[name] = base64.b64decode(body["encrypted_value"])
                return httpx.Response(201)
            if request.method == "DELETE":
                stored.pop(name, None)
                return httpx.Response(204)

        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def vault():
    return TokenVault(os.urandom(32))


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def fake_github():
    return FakeGitHub()
