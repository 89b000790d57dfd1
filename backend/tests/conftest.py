"""
Shared fixtures: fake users, dependency overrides, an in-memory stand-in for
document persistence and an optional live MongoDB for integration tests.
"""

import os

import pytest
from beanie import Document, init_beanie
from beanie import PydanticObjectId as OID
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from app.constants import ApprovalStatus, Role
from app.database import document_models
from app.deps import get_emitter
from app.main import app
from app.models import DoctorInfo, User
from app.rate_limit import limiter
from app.security import get_current_user, get_optional_user
from app.services.realtime import drain_pending_emits
from app.utils import updates

# Before-persist hooks declared on the documents (report/participant counters)
PERSIST_HOOKS = ("sync_report_state", "sync_participant_count")


class RecordingEmitter:
    """Collects emits instead of pushing them to sockets."""

    def __init__(self):
        self.events = []

    async def emit(self, event, data=None, room=None, **kwargs):
        self.events.append((event, data, room))

    def named(self, event):
        return [e for e in self.events if e[0] == event]


@pytest.fixture(autouse=True)
def no_rate_limit():
    """Auth endpoints are rate limited; tests hit them far more often."""
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def make_user():
    """Build a User without touching the database."""

    def _make(role: Role = Role.PATIENT, approval: ApprovalStatus | None = None, **fields) -> User:
        uid = fields.pop("id", None) or OID()
        username = fields.pop("username", f"user{str(uid)[-6:]}")
        doctor_info = fields.pop("doctor_info", None)
        if role == Role.DOCTOR and doctor_info is None:
            doctor_info = DoctorInfo(approval_status=approval or ApprovalStatus.APPROVED)
        return User.model_construct(
            id=uid,
            username=username,
            email=f"{username}@example.com",
            password_hash="x",
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", "User"),
            role=role,
            doctor_info=doctor_info,
            **fields,
        )

    return _make


@pytest.fixture
def login_as():
    """
    Use FastAPI's dependency override system to act as ``user`` on both the
    required and the optional auth dependency.
    """

    def _login(user: User) -> User:
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_optional_user] = lambda: user
        return user

    yield _login
    app.dependency_overrides.pop(get_current_user, None)
    app.dependency_overrides.pop(get_optional_user, None)


@pytest.fixture
def emitter():
    recorder = RecordingEmitter()
    app.dependency_overrides[get_emitter] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_emitter, None)


def _item_matches(item, spec: dict) -> bool:
    return all(getattr(item, key) == value for key, value in spec.items())


def _matches(row, key: str, cond) -> bool:
    """The subset of MongoDB filter syntax the services put in update filters."""
    if key == "$expr":
        ((op, (left, right)),) = cond.items()
        assert op == "$lt"
        return getattr(row, left.lstrip("$")) < getattr(row, right.lstrip("$"))
    field, _, sub = key.partition(".")
    value = getattr(row, field)
    if isinstance(cond, dict) and "$not" in cond:
        return not _matches(row, key, cond["$not"])
    if isinstance(cond, dict) and "$elemMatch" in cond:
        return any(_item_matches(item, cond["$elemMatch"]) for item in value)
    if isinstance(cond, dict) and "$ne" in cond:
        return all(getattr(item, sub) != cond["$ne"] for item in value)
    if sub:
        return any(getattr(item, sub) == cond for item in value)
    return value == cond


def _apply(row, update: dict) -> None:
    for op, fields in update.items():
        for name, value in fields.items():
            current = getattr(row, name)
            if op == "$set":
                setattr(row, name, value)
            elif op == "$inc":
                setattr(row, name, current + value)
            elif op == "$push":
                current.append(value)
            elif op == "$addToSet":
                if value not in current:
                    current.append(value)
            elif op == "$pull":
                keep = [
                    item for item in current
                    if not (_item_matches(item, value) if isinstance(value, dict) else item == value)
                ]
                setattr(row, name, keep)
            else:
                raise AssertionError(f"unsupported update operator {op}")


class MemoryStore:
    """Stored rows keyed by id, written by insert/save and by operator updates.

    Rows are private copies, so a document a test holds behaves like a copy
    loaded by one request. Documents built with ``model_construct`` are
    registered with ``track``.
    """

    def __init__(self):
        self.rows = {}
        self.inserted = []
        self.saved = []
        self.deleted = []
        self.updates = []

    def track(self, *docs):
        for doc in docs:
            self.rows[doc.id] = doc.model_copy(deep=True)
        return docs[0] if len(docs) == 1 else docs

    def load(self, doc_id):
        """A fresh copy of the stored row, as a new request would read it."""
        return self.rows[doc_id].model_copy(deep=True)

    async def find_one_and_update(self, model, query, update):
        self.updates.append(update)
        row = self.rows.get(query["_id"])
        if row is None or not isinstance(row, model):
            return None
        if not all(_matches(row, key, cond) for key, cond in query.items() if key != "_id"):
            return None
        _apply(row, update)
        return row.model_copy(deep=True)


@pytest.fixture
def memory_store(monkeypatch):
    """Replace document persistence with an in-memory MemoryStore."""
    store = MemoryStore()

    def run_hooks(doc):
        for name in PERSIST_HOOKS:
            hook = getattr(doc, name, None)
            if hook is not None:
                hook()

    async def insert(self, *args, **kwargs):
        if self.id is None:
            self.id = OID()
        run_hooks(self)
        store.inserted.append(self)
        store.rows[self.id] = self.model_copy(deep=True)
        return self

    async def save(self, *args, **kwargs):
        run_hooks(self)
        store.saved.append(self)
        store.rows[self.id] = self.model_copy(deep=True)
        return self

    async def delete(self, *args, **kwargs):
        store.deleted.append(self)
        store.rows.pop(self.id, None)

    # lets services build documents without an initialised collection
    monkeypatch.setattr(Document, "get_pymongo_collection", classmethod(lambda cls: None))
    monkeypatch.setattr(Document, "insert", insert)
    monkeypatch.setattr(Document, "save", save)
    monkeypatch.setattr(Document, "delete", delete)
    monkeypatch.setattr(updates, "find_one_and_update", store.find_one_and_update)
    return store


@pytest.fixture
async def live_db():
    """Beanie on a throwaway MongoDB database; skipped when none is reachable."""
    uri = os.getenv("MONGODB_TEST_URI", "mongodb://localhost:27017/patient_social_test")
    client = AsyncMongoClient(uri, serverSelectionTimeoutMS=500)
    try:
        await client.admin.command("ping")
    except PyMongoError:
        await client.close()
        pytest.skip("MongoDB is not reachable")
    db = client.get_default_database()
    await client.drop_database(db.name)
    await init_beanie(database=db, document_models=document_models())
    yield db
    await drain_pending_emits()
    await client.drop_database(db.name)
    await client.close()
