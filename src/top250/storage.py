"""Persistence collaborators for the flat collections (films, managers, tokens).

Every backend stores a collection as a whole list of records and overwrites it
in one step on save. ``locked`` hands out a per-collection re-entrant mutex so
services can hold one load-mutate-save cycle at a time.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, ContextManager, Dict, Iterator, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import Settings
from .db import models
from .errors import StorageUnavailable

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
FILE_MODE = 0o644


class CollectionStore:
    def __init__(self) -> None:
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def load(self, name: str) -> List[Record]:
        try:
            return self._read(name)
        except StorageUnavailable:
            raise
        except (OSError, ValueError, SQLAlchemyError) as exc:
            logger.exception("Failed to read collection %s", name)
            raise StorageUnavailable(f"Failed to read collection '{name}'.") from exc

    def save(self, name: str, records: List[Record]) -> None:
        try:
            self._write(name, records)
        except (OSError, TypeError, ValueError, SQLAlchemyError) as exc:
            logger.exception("Failed to write collection %s", name)
            raise StorageUnavailable(f"Failed to write collection '{name}'.") from exc

    @contextmanager
    def locked(self, name: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(name, threading.RLock())
        with lock:
            yield

    def describe(self) -> str:
        return type(self).__name__

    def _read(self, name: str) -> List[Record]:
        raise NotImplementedError

    def _write(self, name: str, records: List[Record]) -> None:
        raise NotImplementedError


class MemoryStore(CollectionStore):
    def __init__(self, initial: Dict[str, List[Record]] | None = None) -> None:
        super().__init__()
        self._data: Dict[str, List[Record]] = copy.deepcopy(initial or {})

    def _read(self, name: str) -> List[Record]:
        return copy.deepcopy(self._data.get(name, []))

    def _write(self, name: str, records: List[Record]) -> None:
        self._data[name] = copy.deepcopy(records)

    def describe(self) -> str:
        return "memory"


class JsonFileStore(CollectionStore):
    """One ``<name>.json`` file per collection under ``data_dir``."""

    def __init__(self, data_dir: Path | str) -> None:
        super().__init__()
        self.data_dir = Path(data_dir)

    def path_for(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    def _read(self, name: str) -> List[Record]:
        path = self.path_for(name)
        if not path.exists():
            return []
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, list):
            raise ValueError(f"{path} does not hold a list")
        return data

    def _write(self, name: str, records: List[Record]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name)
        mode = path.stat().st_mode & 0o777 if path.exists() else FILE_MODE
        fd, tmp_name = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=self.data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(records, fh, indent=2, ensure_ascii=False)
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def describe(self) -> str:
        return f"json:{self.data_dir}"


class SqlCollectionStore(CollectionStore):
    """Collections kept as JSON rows of the ``collections`` table."""

    def __init__(self, session_factory: Callable[[], ContextManager[Session]]) -> None:
        super().__init__()
        self._session_factory = session_factory

    @classmethod
    def from_settings(cls, settings: Settings) -> "SqlCollectionStore":
        from .db.session import get_session, init_engine

        init_engine(settings)
        return cls(lambda: get_session(settings))

    def _read(self, name: str) -> List[Record]:
        with self._session_factory() as session:
            document = session.get(models.CollectionDocument, name)
            if document is None:
                return []
            return copy.deepcopy(list(document.records or []))

    def _write(self, name: str, records: List[Record]) -> None:
        with self._session_factory() as session:
            document = session.get(models.CollectionDocument, name)
            if document is None:
                session.add(models.CollectionDocument(name=name, records=copy.deepcopy(records)))
            else:
                document.records = copy.deepcopy(records)

    def describe(self) -> str:
        return "sql"


def build_store(settings: Settings) -> CollectionStore:
    backend = settings.storage.backend.lower()
    if backend == "json":
        return JsonFileStore(settings.storage.data_dir)
    if backend == "sql":
        return SqlCollectionStore.from_settings(settings)
    if backend == "memory":
        return MemoryStore()
    raise ValueError(f"Unknown storage backend '{settings.storage.backend}'.")
