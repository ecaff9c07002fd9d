"""
Key-value persistence for users, master resumes and application records.

Values are stored as serialized JSON strings, so any backend that maps string
keys to string values can hold the data. ApplicationStore and SlotStorage own
the key layout; callers never touch raw keys.
"""

import json
import os
import tempfile
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from .exceptions import NotFound, ServiceUnavailable
from .models import ApplicationRecord, ApplicationStatus, ResumeData, User


class KeyValueStore(ABC):
    """String keys to JSON string values."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...


class InMemoryStore(KeyValueStore):
    """Process-local store. Contents are lost on restart."""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)


class JsonFileStore(KeyValueStore):
    """
    Whole-file JSON store.

    Every write rewrites the file through a temporary file and an atomic
    rename, so readers never see a partial file.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except OSError as e:
            raise ServiceUnavailable(f"Cannot read store {self.path}", cause=e) from e
        except json.JSONDecodeError as e:
            raise ServiceUnavailable(f"Corrupt store {self.path}: {e.msg}", cause=e) from e
        if not isinstance(data, dict):
            raise ServiceUnavailable(f"Corrupt store {self.path}: expected a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise ServiceUnavailable(f"Cannot write store {self.path}", cause=e) from e

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._read())


def build_store(path: Optional[Path] = None) -> KeyValueStore:
    """File-backed store when a path is configured, in-memory otherwise."""
    if path:
        logger.info(f"Using JSON file store at {path}")
        return JsonFileStore(path)
    logger.info("Using in-memory store")
    return InMemoryStore()


class ApplicationStore:
    """
    Users and their application records.

    Key layout:
        user:<userId>           -> User
        applications:<userId>   -> [ApplicationRecord, ...] in insertion order
        application:<appId>     -> owning userId
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv
        self._lock = threading.RLock()

    # === Users ===

    def save_user(self, user: User) -> User:
        """Create a user, or merge the given fields into an existing one."""
        with self._lock:
            user_id = user.id or f"user_{uuid.uuid4().hex}"
            existing = self._load_user(user_id)
            now = datetime.utcnow()

            if existing is None:
                stored = user.model_copy(update={"id": user_id, "created_at": now}, deep=True)
            else:
                data = existing.model_dump()
                data.update(user.model_dump(exclude_unset=True, exclude={"id", "created_at"}))
                data["updated_at"] = now
                stored = User.model_validate(data)

            self._store_user(stored)
            logger.debug(f"Saved user {user_id}")
            return stored

    def get_user(self, user_id: str) -> User:
        user = self._load_user(user_id)
        if user is None:
            raise NotFound("User", user_id)
        return user

    def save_resume(self, user_id: str, resume: ResumeData) -> User:
        """Set a user's master resume, creating the user when needed."""
        with self._lock:
            user = self._load_user(user_id)
            now = datetime.utcnow()
            if user is None:
                user = User(id=user_id, master_resume=resume, created_at=now)
            else:
                user = user.model_copy(update={"master_resume": resume, "updated_at": now})
            self._store_user(user)
            logger.info(f"Saved master resume for {user_id}")
            return user

    def get_resume(self, user_id: str) -> Optional[ResumeData]:
        return self.get_user(user_id).master_resume

    # === Applications ===

    def save(self, record: ApplicationRecord) -> ApplicationRecord:
        """Store a new application; returns the stored copy with its generated id."""
        with self._lock:
            stored = record.model_copy(
                update={"id": f"app_{uuid.uuid4().hex}", "created_at": datetime.utcnow()},
                deep=True,
            )
            records = self._load_applications(stored.user_id)
            records.append(stored)
            index_key = f"application:{stored.id}"
            self.kv.set(index_key, json.dumps(stored.user_id))
            try:
                self._store_applications(stored.user_id, records)
            except Exception:
                self.kv.delete(index_key)
                raise
            logger.info(f"Saved application {stored.id} ({stored.job_title} at {stored.company})")
            return stored

    def list_by_user(self, user_id: str) -> List[ApplicationRecord]:
        return self._load_applications(user_id)

    def get_application(self, app_id: str) -> ApplicationRecord:
        user_id = self._owner(app_id)
        for record in self._load_applications(user_id):
            if record.id == app_id:
                return record
        raise NotFound("Application", app_id)

    def update_status(self, app_id: str, status: ApplicationStatus) -> ApplicationRecord:
        """Change status and updated_at; every other field is left as stored."""
        status = ApplicationStatus(status)
        with self._lock:
            user_id = self._owner(app_id)
            records = self._load_applications(user_id)
            for i, record in enumerate(records):
                if record.id == app_id:
                    updated = record.model_copy(
                        update={"status": status, "updated_at": datetime.utcnow()}
                    )
                    records[i] = updated
                    self._store_applications(user_id, records)
                    logger.info(f"Application {app_id} status -> {status.value}")
                    return updated
        raise NotFound("Application", app_id)

    # === Internals ===

    def _owner(self, app_id: str) -> str:
        raw = self.kv.get(f"application:{app_id}")
        if raw is None:
            raise NotFound("Application", app_id)
        return json.loads(raw)

    def _load_user(self, user_id: str) -> Optional[User]:
        raw = self.kv.get(f"user:{user_id}")
        return User.model_validate_json(raw) if raw is not None else None

    def _store_user(self, user: User) -> None:
        self.kv.set(f"user:{user.id}", user.model_dump_json(by_alias=True))

    def _load_applications(self, user_id: str) -> List[ApplicationRecord]:
        raw = self.kv.get(f"applications:{user_id}")
        if raw is None:
            return []
        return [ApplicationRecord.model_validate(item) for item in json.loads(raw)]

    def _store_applications(self, user_id: str, records: List[ApplicationRecord]) -> None:
        self.kv.set(
            f"applications:{user_id}",
            json.dumps([r.to_json_dict() for r in records]),
        )


class StorageKeys:
    USER_ID = "resumematch_user_id"
    MASTER_RESUME = "resumematch_master_resume"
    AUTH_TOKEN = "resumematch_auth_token"
    API_KEY = "resumematch_api_key"
    LAST_SYNC = "resumematch_last_sync"

    ALL = (USER_ID, MASTER_RESUME, AUTH_TOKEN, API_KEY, LAST_SYNC)


class SlotStorage:
    """The fixed set of named local slots, each holding one JSON value."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def save(self, key: str, value: Any) -> None:
        self.kv.set(key, json.dumps(value))

    def load(self, key: str) -> Any:
        raw = self.kv.get(key)
        return json.loads(raw) if raw else None

    def remove(self, key: str) -> None:
        self.kv.delete(key)

    def get_user_id(self) -> Optional[str]:
        return self.load(StorageKeys.USER_ID)

    def set_user_id(self, user_id: str) -> None:
        self.save(StorageKeys.USER_ID, user_id)

    def get_master_resume(self) -> Optional[ResumeData]:
        data = self.load(StorageKeys.MASTER_RESUME)
        return ResumeData.model_validate(data) if data else None

    def set_master_resume(self, resume: ResumeData) -> None:
        self.save(StorageKeys.MASTER_RESUME, resume.to_json_dict())
        self.save(StorageKeys.LAST_SYNC, datetime.utcnow().isoformat())

    def get_auth_token(self) -> Optional[str]:
        return self.load(StorageKeys.AUTH_TOKEN)

    def set_auth_token(self, token: str) -> None:
        self.save(StorageKeys.AUTH_TOKEN, token)

    def get_api_key(self) -> Optional[str]:
        return self.load(StorageKeys.API_KEY)

    def set_api_key(self, key: str) -> None:
        self.save(StorageKeys.API_KEY, key)

    def clear_all(self) -> None:
        for key in StorageKeys.ALL:
            self.kv.delete(key)
