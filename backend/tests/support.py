import asyncio
import copy
import os
import re
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

os.environ.setdefault("JWT_SECRET", "studyhub-unit-test-signing-secret-0123456789")
os.environ.setdefault("APP_ENV", "development")

from bson import ObjectId  # noqa: E402
from pymongo.errors import DuplicateKeyError  # noqa: E402

_MISSING = object()


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and any(key.startswith("$") for key in condition):
        for op, arg in condition.items():
            if op == "$in":
                candidate = None if value is _MISSING else value
                if candidate not in arg:
                    return False
            elif op == "$regex":
                flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                if not isinstance(value, str) or not re.search(arg, value, flags):
                    return False
            elif op == "$options":
                continue
            else:
                raise NotImplementedError(op)
        return True
    return value is not _MISSING and value == condition


def matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, condition in query.items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
            continue
        if not _matches_condition(doc.get(key, _MISSING), condition):
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._docs if length is None else self._docs[:length]


class FakeCollection:
    """Just enough of motor's collection API for the route tests."""

    def __init__(self, name: str):
        self.name = name
        self.docs: List[Dict[str, Any]] = []
        self.unique_keys: List[List[str]] = []

    async def create_index(self, keys, unique: bool = False, **_kwargs) -> str:
        fields = [keys] if isinstance(keys, str) else [field for field, _ in keys]
        if unique:
            seen = set()
            for doc in self.docs:
                key = tuple(repr(doc.get(field)) for field in fields)
                if key in seen:
                    raise DuplicateKeyError(f"E11000 duplicate key on {self.name} {fields} while building index")
                seen.add(key)
            self.unique_keys.append(fields)
        return "_".join(fields)

    def _check_unique(self, candidate: Dict[str, Any], ignore: Optional[Dict[str, Any]] = None) -> None:
        for fields in self.unique_keys:
            if any(field not in candidate for field in fields):
                continue
            for doc in self.docs:
                if doc is ignore:
                    continue
                if all(doc.get(field, _MISSING) == candidate[field] for field in fields):
                    raise DuplicateKeyError(f"E11000 duplicate key on {self.name} {fields}")

    async def find_one(self, query: Dict[str, Any], projection=None) -> Optional[Dict[str, Any]]:
        for doc in self.docs:
            if matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query: Dict[str, Any]) -> FakeCursor:
        return FakeCursor([copy.deepcopy(doc) for doc in self.docs if matches(doc, query)])

    async def insert_one(self, doc: Dict[str, Any]):
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self._check_unique(stored)
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"], acknowledged=True)

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any], upsert: bool = False):
        for doc in self.docs:
            if matches(doc, query):
                changed = {**doc, **update.get("$set", {})}
                self._check_unique(changed, ignore=doc)
                doc.update(update.get("$set", {}))
                return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)
        new_doc = {key: value for key, value in query.items() if not isinstance(value, dict)}
        new_doc.update(update.get("$set", {}))
        new_doc.update(update.get("$setOnInsert", {}))
        result = await self.insert_one(new_doc)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=result.inserted_id)

    async def delete_one(self, query: Dict[str, Any]):
        for index, doc in enumerate(self.docs):
            if matches(doc, query):
                del self.docs[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    def __init__(self):
        self._collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]


class BrokenCollection(FakeCollection):
    async def find_one(self, query, projection=None):
        raise RuntimeError("connection reset by mongo peer 10.0.0.7")

    def find(self, query):
        raise RuntimeError("connection reset by mongo peer 10.0.0.7")


class BrokenDatabase(FakeDatabase):
    def __getitem__(self, name: str) -> FakeCollection:
        return BrokenCollection(name)


class RecordingChatbot:
    def __init__(self, reply: str = "Hello from StudyHub"):
        self.reply = reply
        self.messages: List[str] = []

    async def get_reply(self, message: str) -> str:
        self.messages.append(message)
        return self.reply


def build_app(db: Optional[FakeDatabase] = None, stripe_service=None, chatbot=None):
    from database import ensure_indexes
    from server import create_app

    db = db if db is not None else FakeDatabase()
    asyncio.run(ensure_indexes(db))
    return create_app(db=db, stripe_service=stripe_service, chatbot=chatbot or RecordingChatbot()), db


def seed_user(db: FakeDatabase, uid: str, email: str, role: str = "student") -> Dict[str, Any]:
    doc = {"uid": uid, "email": email, "displayName": uid.title(), "role": role}
    asyncio.run(db["users"].insert_one(doc))
    return doc


def auth_header(uid: str, email: str, role: str) -> Dict[str, str]:
    from auth import create_token

    return {"Authorization": f"Bearer {create_token({'uid': uid, 'email': email, 'role': role})}"}
