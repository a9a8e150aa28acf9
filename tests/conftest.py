# tests/conftest.py
import os
import sys
import asyncio
import json
from urllib.parse import urlencode

import pytest
from sqlalchemy.pool import StaticPool

sys.path.append(os.path.abspath("."))

from crm_api.crud import UserRepository
from crm_api.database import Database, get_db
from crm_api.security import create_access_token
from main import create_app


# DB (SQLite in-memory for tests)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture()
def database():
    db = Database(SQLALCHEMY_DATABASE_URL, poolclass=StaticPool)
    db.create_all()
    yield db
    db.drop_all()
    db.dispose()


@pytest.fixture()
def db_session(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def app(database):
    return create_app(database)


# One event loop for the WHOLE pytest session
@pytest.fixture(scope="session")
def session_loop():
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()


# Simple ASGI response/client
class SimpleResponse:
    def __init__(
        self, status_code: int, body: bytes, headers: list[tuple[bytes, bytes]]
    ):
        self.status_code = status_code
        self._body = body
        self.headers = {k.decode(): v.decode() for k, v in headers}

    @property
    def content(self) -> bytes:
        return self._body

    def json(self):
        return json.loads(self._body.decode())


class SimpleClient:
    """
    Important:
    - uses ONE shared session loop (passed from fixture)
    - does NOT call asyncio.run()
    - does NOT close the loop
    """

    def __init__(self, app, loop):
        self.app = app
        self.loop = loop

    def close(self):
        # do not close the loop here (session fixture closes it)
        pass

    def request(
        self,
        method: str,
        path: str,
        json_body=None,
        params=None,
        headers=None,
    ):
        headers = headers or {}
        body_bytes = b""

        path, _, query = path.partition("?")
        if params:
            extra = urlencode(params, doseq=True)
            query = f"{query}&{extra}" if query else extra

        if json_body is not None:
            body_bytes = json.dumps(json_body).encode()
            headers.setdefault("content-type", "application/json")

        raw_headers = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "headers": raw_headers,
            "query_string": query.encode(),
            "client": ("testclient", 5000),
            "server": ("testserver", 80),
        }

        async def receive():
            nonlocal body_bytes
            chunk, body_bytes = body_bytes, b""
            return {"type": "http.request", "body": chunk, "more_body": False}

        response_body = bytearray()
        response_status = 500
        response_headers: list[tuple[bytes, bytes]] = []

        async def send(message):
            nonlocal response_status, response_headers
            if message["type"] == "http.response.start":
                response_status = message["status"]
                response_headers = message.get("headers", [])
            elif message["type"] == "http.response.body":
                response_body.extend(message.get("body", b""))

        # ensure the loop is the current one
        asyncio.set_event_loop(self.loop)
        self.loop.run_until_complete(self.app(scope, receive, send))
        return SimpleResponse(response_status, bytes(response_body), response_headers)

    def get(self, path: str, params=None, headers=None):
        return self.request("GET", path, params=params, headers=headers)

    def post(self, path: str, json=None, headers=None):
        return self.request("POST", path, json_body=json, headers=headers)

    def put(self, path: str, json=None, headers=None):
        return self.request("PUT", path, json_body=json, headers=headers)

    def delete(self, path: str, headers=None):
        return self.request("DELETE", path, headers=headers)


# Client fixture: override DB dependency per test
@pytest.fixture()
def client(app, db_session, session_loop):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    c = SimpleClient(app, loop=session_loop)
    try:
        yield c
    finally:
        app.dependency_overrides.clear()
        c.close()


def make_user(db_session, email="owner@example.com", password="secret123", name="Owner"):
    return UserRepository(db_session).create(
        {"name": name, "email": email, "password": password}
    )


@pytest.fixture()
def user(db_session):
    return make_user(db_session)


@pytest.fixture()
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
