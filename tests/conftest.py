import os

# Must be set before examtrack.settings is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ.pop("SEED_USERNAME", None)
os.environ.pop("SEED_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient

from examtrack.db import Base, SessionLocal, engine
from examtrack.main import app


@pytest.fixture(autouse=True)
def fresh_schema():
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


def login(client, username="alice", password="secret"):
    client.post("/auth/register", json={"username": username, "password": password})
    resp = client.post("/auth/token", data={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def auth(client):
    return login(client)


@pytest.fixture
def other_auth(client):
    return login(client, "bob", "hunter2")


@pytest.fixture
def make_subject(client, auth):
    def _make(name="Algorithms", weightage=10, chapters=None):
        """Create a subject; ``chapters`` maps chapter name to a list of topic names."""
        subject = client.post("/api/subjects", json={"name": name, "weightage": weightage}, headers=auth).json()
        topic_ids = []
        for chapter_name, topic_names in (chapters or {}).items():
            chapter = client.post(
                f"/api/subjects/{subject['id']}/chapters", json={"name": chapter_name}, headers=auth
            ).json()
            for topic_name in topic_names:
                topic = client.post(
                    f"/api/chapters/{chapter['id']}/topics", json={"name": topic_name}, headers=auth
                ).json()
                topic_ids.append(topic["id"])
        subject["topic_ids"] = topic_ids
        return subject

    return _make

