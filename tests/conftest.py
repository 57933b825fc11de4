from unittest.mock import MagicMock

import pytest

from firebase_admin_init import FirebaseServices


class FakeDocument:
    def __init__(self, store, collection, doc_id):
        self.store = store
        self.collection = collection
        self.doc_id = doc_id

    def set(self, data, merge=False):
        self.store.writes.append((self.collection, self.doc_id, dict(data), merge))
        if self.store.fail_on == (self.collection, self.doc_id):
            raise RuntimeError(f"write to {self.collection}/{self.doc_id} rejected")
        docs = self.store.docs.setdefault(self.collection, {})
        if merge and self.doc_id in docs:
            docs[self.doc_id].update(data)
        else:
            docs[self.doc_id] = dict(data)


class FakeCollection:
    def __init__(self, store, name):
        self.store = store
        self.name = name

    def document(self, doc_id):
        return FakeDocument(self.store, self.name, doc_id)


class FakeFirestore:
    """In-memory stand-in for the Firestore client, recording every set()."""

    def __init__(self, docs=None, fail_on=None):
        self.docs = docs or {}
        self.writes = []
        self.fail_on = fail_on

    def collection(self, name):
        return FakeCollection(self, name)


class NotFound(Exception):
    code = "NOT_FOUND"


class FakeAuth:
    """Records auth calls; users dict maps uid -> claims."""

    def __init__(self, users=None):
        self.users = dict(users or {})
        self.calls = []

    def get_user(self, uid):
        self.calls.append(("get_user", uid))
        if uid not in self.users:
            raise NotFound(f"No user record found for the provided user ID: {uid}")
        return MagicMock(uid=uid)

    def create_user(self, **kwargs):
        self.calls.append(("create_user", kwargs))
        self.users[kwargs["uid"]] = None

    def update_user(self, uid, **kwargs):
        self.calls.append(("update_user", uid, kwargs))

    def set_custom_user_claims(self, uid, claims):
        self.calls.append(("set_custom_user_claims", uid, claims))
        self.users[uid] = dict(claims)


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def fake_auth():
    return FakeAuth()


@pytest.fixture
def services(fake_auth, fake_db):
    return FirebaseServices(MagicMock(name="app"), fake_auth, fake_db)

