import os

# Must be set before the blog package reads its configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-access-secret-0123456789-0123456789"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret-0123456789-0123456789"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENV"] = "test"

import pytest
from fastapi.testclient import TestClient

from blog.database import Base, SessionLocal, engine
from blog.main import app

PASSWORD = "Secure1!"


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    """Register an account and return the session body plus auth headers."""
    def _register(username, email=None, password=PASSWORD, **extra):
        response = client.post(
            "/api/auth/register",
            json={
                "email": email or f"{username}@mail.com",
                "username": username,
                "password": password,
                **extra,
            },
        )
        assert response.status_code == 201, response.text
        body = response.json()
        body["headers"] = bearer(body["access_token"])
        return body
    return _register


@pytest.fixture
def make_post(client):
    def _make_post(headers, title="A post about testing", **fields):
        payload = {"title": title, "content": "Some content long enough to pass.", **fields}
        response = client.post("/api/posts", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _make_post


@pytest.fixture
def make_comment(client):
    def _make_comment(headers, post_id, content="Nice post", parent=None, **fields):
        payload = {"content": content, "post_id": post_id, "parent_comment_id": parent, **fields}
        response = client.post("/api/comments", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _make_comment
