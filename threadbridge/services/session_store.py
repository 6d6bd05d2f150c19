"""Durable mapping from (chat, user) to the Assistant thread serving it."""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from threadbridge.database import create_session_factory
from threadbridge.errors import DurableStateCorrupt
from threadbridge.logging_config import get_logger
from threadbridge.models import AssistantSession

logger = get_logger("session_store")

MISSING_PARTICIPANT = "undefined"


@dataclass(frozen=True)
class SessionKey:
    conversation_id: Union[int, str]
    participant_id: Optional[Union[int, str]] = None

    def __str__(self) -> str:
        participant = MISSING_PARTICIPANT if self.participant_id is None else self.participant_id
        return f"{self.conversation_id}:{participant}"

    @classmethod
    def parse(cls, value: str) -> "SessionKey":
        conversation_id, sep, participant_id = value.rpartition(":")
        if not sep or not conversation_id:
            raise ValueError(f"Invalid session key: {value!r}")
        return cls(conversation_id, None if participant_id == MISSING_PARTICIPANT else participant_id)


@dataclass(frozen=True)
class SessionRecord:
    thread_id: str
    prompt_version: Optional[str] = None  # None = written before versioning existed

    def is_current(self, prompt_version: str) -> bool:
        return self.prompt_version is not None and self.prompt_version == prompt_version

    def to_dict(self) -> dict:
        return {"thread_id": self.thread_id, "prompt_version": self.prompt_version}


def decode_record(raw: Any) -> SessionRecord:
    """Decode one stored entry, accepting both the versioned and the legacy shape.

    Legacy entries are a bare thread id string; they decode with no version and
    are therefore always stale.
    """
    if isinstance(raw, str) and raw:
        return SessionRecord(thread_id=raw)
    if isinstance(raw, dict):
        thread_id = raw.get("thread_id")
        if isinstance(thread_id, str) and thread_id:
            version = raw.get("prompt_version")
            return SessionRecord(thread_id=thread_id, prompt_version=None if version is None else str(version))
    raise DurableStateCorrupt(f"Unrecognized session record: {raw!r}")


class SessionStore(ABC):
    """Keyed store of SessionRecords with explicit persistence."""

    @abstractmethod
    def load(self) -> dict[str, SessionRecord]:
        """Read durable state into memory. Never raises on bad content."""

    @abstractmethod
    def get(self, key: SessionKey) -> Optional[SessionRecord]:
        pass

    @abstractmethod
    def put(self, key: SessionKey, record: SessionRecord) -> None:
        pass

    @abstractmethod
    def persist(self) -> None:
        """Write the full in-memory mapping to durable storage."""

    @abstractmethod
    def reset_all(self) -> None:
        """Drop all durable state; every key resolves to a fresh thread afterwards."""

    @abstractmethod
    def snapshot(self) -> dict[str, SessionRecord]:
        """Copy of the in-memory mapping."""


class JsonFileSessionStore(SessionStore):
    """Sessions kept in one JSON file, rewritten in full after each change."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._records: dict[str, SessionRecord] = {}

    def load(self) -> dict[str, SessionRecord]:
        self._records = self._read()
        logger.info(
            "Sessions loaded",
            extra={"context": {"path": str(self.path), "count": len(self._records)}},
        )
        return dict(self._records)

    def _read(self) -> dict[str, SessionRecord]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Session file unreadable, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning("Session file is not a JSON object, starting empty")
            return {}

        records = {}
        for key, raw in data.items():
            try:
                records[key] = decode_record(raw)
            except DurableStateCorrupt as e:
                logger.warning(f"Skipping session entry {key}: {e}")
        return records

    def get(self, key: SessionKey) -> Optional[SessionRecord]:
        return self._records.get(str(key))

    def put(self, key: SessionKey, record: SessionRecord) -> None:
        self._records[str(key)] = record

    def persist(self) -> None:
        payload = {key: record.to_dict() for key, record in self._records.items()}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp, self.path)

    def reset_all(self) -> None:
        self._records = {}
        if self.path.exists():
            self.path.unlink()
            logger.info("Old assistant threads cleared", extra={"context": {"path": str(self.path)}})

    def snapshot(self) -> dict[str, SessionRecord]:
        return dict(self._records)


class SqlSessionStore(SessionStore):
    """Sessions kept in the assistant_sessions table.

    Writes are staged in memory and flushed by persist(), matching the file store.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self._records: dict[str, SessionRecord] = {}
        self._dirty: set[str] = set()

    def load(self) -> dict[str, SessionRecord]:
        db: Session = self.session_factory()
        try:
            rows = db.query(AssistantSession).all()
        except SQLAlchemyError as e:
            logger.warning(f"Session table unreadable, starting empty: {e}")
            rows = []
        finally:
            db.close()

        self._records = {}
        self._dirty = set()
        for row in rows:
            self._records[row.session_key] = SessionRecord(thread_id=row.thread_id, prompt_version=row.prompt_version)
        logger.info("Sessions loaded", extra={"context": {"count": len(self._records)}})
        return dict(self._records)

    def get(self, key: SessionKey) -> Optional[SessionRecord]:
        return self._records.get(str(key))

    def put(self, key: SessionKey, record: SessionRecord) -> None:
        self._records[str(key)] = record
        self._dirty.add(str(key))

    def persist(self) -> None:
        if not self._dirty:
            return
        now = datetime.now(timezone.utc)
        db: Session = self.session_factory()
        try:
            for key in sorted(self._dirty):
                record = self._records[key]
                row = db.query(AssistantSession).filter(AssistantSession.session_key == key).first()
                if row is None:
                    row = AssistantSession(session_key=key)
                    db.add(row)
                row.thread_id = record.thread_id
                row.prompt_version = record.prompt_version
                row.updated_at = now
            db.commit()
            self._dirty = set()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def reset_all(self) -> None:
        db: Session = self.session_factory()
        try:
            deleted = db.query(AssistantSession).delete()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Session reset failed: {e}")
            deleted = 0
        finally:
            db.close()
        self._records = {}
        self._dirty = set()
        logger.info("Old assistant threads cleared", extra={"context": {"deleted": deleted}})

    def snapshot(self) -> dict[str, SessionRecord]:
        return dict(self._records)


def build_session_store(settings) -> SessionStore:
    """Create the configured store, apply the startup reset policy, then load it."""
    if settings.session_store_url:
        store: SessionStore = SqlSessionStore(create_session_factory(settings.session_store_url))
    else:
        store = JsonFileSessionStore(settings.threads_file)

    if settings.reset_sessions_on_startup:
        store.reset_all()
    store.load()
    return store
