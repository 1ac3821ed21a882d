"""Shared fixtures.

``MemoryStore`` implements the same store protocol as
``ripple.server.db.Database`` so the service layer can be tested
without SQLite.
"""
import copy
import uuid
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from ripple.server.auth import TokenIssuer
from ripple.server.config import get_settings
from ripple.server.db import Database
from ripple.server.errors import Conflict
from ripple.server.projection import apply_visibility, expand_document
from ripple.server.server import get_app

SECRET = "test-secret"


class MemoryStore:
    """In-memory account store."""

    def __init__(self):
        self.users = {}
        self.topics = {}

    def _resolve(self, collection, ref_id):
        if collection == "users":
            doc = self.users.get(ref_id)
            return apply_visibility(copy.deepcopy(doc)) if doc else None
        if collection == "topics":
            doc = self.topics.get(ref_id)
            return copy.deepcopy(doc) if doc else None
        return None

    @staticmethod
    def _sorted(docs):
        return sorted(docs, key=lambda doc: (doc["name"], doc["id"]))

    async def find_one(self, reveal=(), **predicate):
        for doc in self._sorted(self.users.values()):
            if all(doc.get(key) == value for key, value in predicate.items()):
                return apply_visibility(copy.deepcopy(doc), reveal)
        return None

    async def find_by_id(self, user_id, reveal=(), expand=()):
        doc = self.users.get(user_id)
        if doc is None:
            return None
        return expand_document(apply_visibility(doc, reveal), expand, self._resolve)

    async def find(self, name_contains="", edge=None, target_id=None, limit=None, skip=0):
        docs = self._sorted(self.users.values())
        if name_contains:
            docs = [doc for doc in docs if name_contains.casefold() in doc["name"].casefold()]
        if edge is not None:
            docs = [doc for doc in docs if target_id in doc[edge]]
        docs = docs[skip:]
        if limit is not None:
            docs = docs[:limit]
        return [apply_visibility(copy.deepcopy(doc)) for doc in docs]

    async def create(self, doc):
        if any(user["name"] == doc["name"] for user in self.users.values()):
            raise Conflict(f"用户名 '{doc['name']}' 已存在")
        user = {
            "avatar_url": None,
            "gender": None,
            "headline": None,
            "locations": [],
            "business": None,
            "employments": [],
            "educations": [],
            "following": [],
            "followingTopics": [],
        }
        user.update(copy.deepcopy(doc))
        user["id"] = str(uuid.uuid4())
        user["created_at"] = datetime.now()
        self.users[user["id"]] = user
        return apply_visibility(copy.deepcopy(user))

    async def update_by_id(self, user_id, partial):
        doc = self.users.get(user_id)
        if doc is None:
            return None
        if "name" in partial and any(
                user["name"] == partial["name"] and uid != user_id for uid, user in self.users.items()):
            raise Conflict(f"用户名 '{partial['name']}' 已存在")
        doc.update(copy.deepcopy(partial))
        return apply_visibility(copy.deepcopy(doc))

    async def delete_by_id(self, user_id):
        return self.users.pop(user_id, None) is not None

    async def exists_by_id(self, user_id):
        return user_id in self.users

    async def create_topic(self, doc):
        if any(topic["name"] == doc["name"] for topic in self.topics.values()):
            raise Conflict(f"话题 '{doc['name']}' 已存在")
        topic = {"avatar_url": None, "introduction": None}
        topic.update(doc)
        topic["id"] = str(uuid.uuid4())
        topic["created_at"] = datetime.now()
        self.topics[topic["id"]] = topic
        return copy.deepcopy(topic)

    async def find_topic(self, topic_id):
        return copy.deepcopy(self.topics.get(topic_id))

    async def topic_exists(self, topic_id):
        return topic_id in self.topics

    async def find_topics(self, name_contains="", limit=None, skip=0):
        docs = self._sorted(self.topics.values())
        if name_contains:
            docs = [doc for doc in docs if name_contains.casefold() in doc["name"].casefold()]
        docs = docs[skip:]
        if limit is not None:
            docs = docs[:limit]
        return copy.deepcopy(docs)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def issuer():
    return TokenIssuer(SECRET, expires_seconds=60)


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "ripple-test.db"))
    database.db.connect(reuse_if_open=True)
    database.create_tables()
    yield database
    database.db.close()


@pytest.fixture
def client(tmp_path, monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "sqlite_path", str(tmp_path / "ripple-api.db"))
    monkeypatch.setattr(settings, "jwt_secret", SECRET)
    with TestClient(get_app()) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Create a user through the API and return the response body."""
    def _register(name, password="pw", **profile):
        res = client.post("/users", json={"name": name, "password": password, **profile})
        assert res.status_code == 201, res.text
        return res.json()
    return _register


@pytest.fixture
def auth_headers(client):
    """Log in through the API and return an Authorization header."""
    def _auth_headers(name, password="pw"):
        res = client.post("/users/login", json={"name": name, "password": password})
        assert res.status_code == 200, res.text
        return {"Authorization": "Bearer " + res.json()["token"]}
    return _auth_headers
