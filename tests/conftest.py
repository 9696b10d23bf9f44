import copy
import uuid

import pytest

from researchhub import create_app, runtime
from researchhub.config import AppConfig
from researchhub.services import auth_service


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self.exists = data is not None
        self._data = copy.deepcopy(data)

    def to_dict(self):
        return copy.deepcopy(self._data) if self.exists else None


class FakeDocumentRef:
    def __init__(self, db, collection_name, doc_id):
        self._db = db
        self._collection_name = collection_name
        self.id = doc_id

    def _docs(self):
        return self._db.store.setdefault(self._collection_name, {})

    def get(self, transaction=None):
        return FakeSnapshot(self.id, self._docs().get(self.id))

    def set(self, data, merge=False):
        docs = self._docs()
        if merge and self.id in docs:
            docs[self.id].update(copy.deepcopy(data))
        else:
            docs[self.id] = copy.deepcopy(data)

    def update(self, updates):
        docs = self._docs()
        if self.id not in docs:
            raise KeyError(f"No document to update: {self._collection_name}/{self.id}")
        docs[self.id].update(copy.deepcopy(updates))

    def delete(self):
        self._docs().pop(self.id, None)


class FakeQuery:
    def __init__(self, db, collection_name, filters=(), limit_count=None, order=None):
        self._db = db
        self._collection_name = collection_name
        self._filters = tuple(filters)
        self._limit = limit_count
        self._order = order

    def _copy(self, **changes):
        state = dict(filters=self._filters, limit_count=self._limit, order=self._order)
        state.update(changes)
        return FakeQuery(self._db, self._collection_name, **state)

    def where(self, *args, **kwargs):
        if 'filter' in kwargs:
            raise TypeError("filter keyword unsupported")
        return self._copy(filters=self._filters + (args,))

    def order_by(self, field_path, direction='ASCENDING'):
        return self._copy(order=(field_path, direction == 'DESCENDING'))

    def limit(self, count):
        return self._copy(limit_count=count)

    def _matches(self, data):
        for field_path, op_string, value in self._filters:
            if op_string == '==' and data.get(field_path) != value:
                return False
            if op_string == 'in' and data.get(field_path) not in value:
                return False
        return True

    def stream(self):
        items = [(doc_id, data) for doc_id, data in self._db.store.get(self._collection_name, {}).items()
                 if self._matches(data)]
        if self._order is not None:
            field_path, descending = self._order
            # Firestore leaves out documents that lack the ordered field.
            items = [item for item in items if item[1].get(field_path) is not None]
            items.sort(key=lambda item: item[1][field_path], reverse=descending)
        if self._limit is not None:
            items = items[:self._limit]
        return iter([FakeSnapshot(doc_id, data) for doc_id, data in items])


class FakeCollection(FakeQuery):
    def __init__(self, db, collection_name):
        super().__init__(db, collection_name)

    def document(self, doc_id=None):
        return FakeDocumentRef(self._db, self._collection_name, doc_id or uuid.uuid4().hex[:20])

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return None, ref


class FakeFirestore:
    def __init__(self):
        self.store = {}

    def collection(self, name):
        return FakeCollection(self, name)

    def seed(self, collection_name, doc_id, data):
        self.store.setdefault(collection_name, {})[doc_id] = copy.deepcopy(data)

    def read(self, collection_name, doc_id):
        return copy.deepcopy(self.store.get(collection_name, {}).get(doc_id))

    def all(self, collection_name):
        return copy.deepcopy(self.store.get(collection_name, {}))


class FakeTransaction:
    def set(self, ref, data, merge=False):
        ref.set(data, merge=merge)

    def update(self, ref, updates):
        ref.update(updates)


class RecordingTransaction:
    """Buffers writes until commit, matching what `firestore.transactional` drives."""

    _max_attempts = 5
    _read_only = False

    def __init__(self):
        self._id = None
        self._pending = []
        self.commits = 0
        self.rollbacks = 0

    @property
    def in_progress(self):
        return self._id is not None

    def _begin(self, retry_id=None):
        self._id = b"txn"

    def _clean_up(self):
        self._pending = []
        self._id = None

    def _commit(self):
        for write in self._pending:
            write()
        self.commits += 1
        self._clean_up()
        return []

    def _rollback(self):
        self.rollbacks += 1
        self._clean_up()

    def set(self, ref, data, merge=False):
        self._pending.append(lambda: ref.set(data, merge=merge))

    def update(self, ref, updates):
        self._pending.append(lambda: ref.update(updates))


class TransactionalFirestore(FakeFirestore):
    def __init__(self):
        super().__init__()
        self.transactions = []

    def transaction(self):
        transaction = RecordingTransaction()
        self.transactions.append(transaction)
        return transaction


@pytest.fixture()
def fake_db(monkeypatch):
    db = FakeFirestore()
    monkeypatch.setattr(runtime, "db", db)
    monkeypatch.setattr(runtime, "run_in_transaction", lambda callback: callback(FakeTransaction()))
    return db


@pytest.fixture()
def app():
    flask_app = create_app(AppConfig(flask_secret_key="test-secret", runtime_env="test"))
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture()
def client(app, fake_db):
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture()
def login(monkeypatch):
    """Register bearer tokens; returns a helper producing Authorization headers."""
    tokens = {}

    def _verify(request):
        return tokens.get(auth_service.extract_bearer_token(request))

    monkeypatch.setattr(runtime, "verify_firebase_token", _verify)

    def _login(uid, email="", **claims):
        token = f"token-{uid}"
        tokens[token] = dict(uid=uid, email=email or f"{uid}@example.com", **claims)
        return {"Authorization": f"Bearer {token}"}

    return _login


@pytest.fixture()
def transactional_db(monkeypatch):
    """Firestore double for tests that go through the real transaction runner."""
    db = TransactionalFirestore()
    monkeypatch.setattr(runtime, "db", db)
    return db
