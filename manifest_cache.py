# pylint: disable=broad-exception-caught, line-too-long
"""
ManifestCache module for Destiny 2 manifest lookups.

Wraps a read-only Destiny 2 manifest SQLite snapshot and decodes rows into typed
definition records. A snapshot is immutable once loaded; a newer one is swapped in
atomically by load_snapshot(), so readers that pinned the previous snapshot keep
reading a consistent store until they finish.
"""
import json
import logging
import os
import sqlite3
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from constants import BUNGIE_REQUIRED_DEFS, MANIFEST_DB_PATH, SQLITE_CHUNK_SIZE
from errors import CorruptRecord, InvalidIdentifier, StoreUnavailable
from helpers import to_signed
from models import DefinitionRecord, record_model_for

# (hash, name, icon, itemTypeDisplayName)
SearchRow = Tuple[Optional[int], Optional[str], Optional[str], Optional[str]]


def _chunks(lst: list, n: int = SQLITE_CHUNK_SIZE):
    for i in range(0, len(lst), n):
        yield lst[i:i + n]


class ManifestSnapshot:
    """
    One loaded manifest SQLite file.

    Holds a read-only connection shared across threads (guarded by a lock) and a
    per-definition memo of decoded records. Both live exactly as long as the snapshot.
    """

    def __init__(self, path: str, version: Optional[str], conn: sqlite3.Connection, tables: Iterable[str]):
        self.path = path
        self.version = version
        self.loaded_at = datetime.now(timezone.utc)
        self.tables = frozenset(tables)
        self._conn = conn
        self._lock = threading.RLock()
        self._memo: Dict[str, Dict[int, DefinitionRecord]] = defaultdict(dict)

    def __del__(self):
        """
        Destructor to make sure a retired snapshot releases its connection.
        """
        self.close()

    def close(self) -> None:
        """Close the SQLite connection. Further lookups raise StoreUnavailable."""
        lock = getattr(self, "_lock", None)
        if lock is None:
            return
        with lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    @property
    def closed(self) -> bool:
        return self._conn is None

    def _decode(self, definition_type: str, record_id: int, payload) -> DefinitionRecord:
        model = record_model_for(definition_type)
        try:
            return model.model_validate(json.loads(payload))
        except (TypeError, ValueError, ValidationError) as e:
            # json.JSONDecodeError and pydantic's ValidationError are both ValueErrors
            raise CorruptRecord(definition_type, record_id, str(e).splitlines()[0]) from e

    def _fetch_rows(self, definition_type: str, hashes: List[int]) -> Dict[int, object]:
        """
        Batch fetch raw JSON payloads keyed by unsigned hash.

        Bungie stores ids as signed 32-bit integers; both forms are matched so that
        tables keyed either way resolve.
        """
        out: Dict[int, object] = {}
        with self._lock:
            if self._conn is None:
                raise StoreUnavailable("Manifest snapshot is closed.")
            cursor = self._conn.cursor()
            for chunk in _chunks(hashes):
                params = tuple(chunk) + tuple(to_signed(h) for h in chunk)
                placeholders = ",".join("?" for _ in params)
                try:
                    cursor.execute(f"SELECT id, json FROM {definition_type} WHERE id IN ({placeholders})", params)
                    rows = cursor.fetchall()
                except sqlite3.Error as e:
                    logging.error("Manifest lookup failed for %s (%d ids): %s", definition_type, len(chunk), e)
                    raise StoreUnavailable(f"Manifest snapshot unreadable: {e}") from e
                for row_id, payload in rows:
                    out[int(row_id) & 0xFFFFFFFF] = payload
        return out

    def get(self, definition_type: str, item_hash: int) -> Optional[DefinitionRecord]:
        """
        Resolve a single unsigned hash against one definition table.

        Args:
            definition_type (str): Manifest table name.
            item_hash (int): Unsigned 32-bit hash.

        Returns:
            DefinitionRecord or None: Decoded record if found, else None.

        Raises:
            InvalidIdentifier: If item_hash is not an unsigned 32-bit integer.
            CorruptRecord: If the stored payload cannot be decoded.
            StoreUnavailable: If the snapshot cannot be read.
        """
        to_signed(item_hash)  # range check
        if definition_type not in self.tables:
            logging.warning("Unknown manifest definition type requested: %s", definition_type)
            return None
        memo = self._memo[definition_type]
        with self._lock:
            if item_hash in memo:
                return memo[item_hash]
        payload = self._fetch_rows(definition_type, [item_hash]).get(item_hash)
        if payload is None:
            logging.debug("Manifest hash %s not found in %s.", item_hash, definition_type)
            return None
        record = self._decode(definition_type, item_hash, payload)
        with self._lock:
            memo[item_hash] = record
        return record

    def get_many(self, definition_type: str, hashes: Iterable[int]) -> Dict[int, DefinitionRecord]:
        """
        Resolve many unsigned hashes for one definition table with memo + batch SQL.

        Absent hashes are omitted. Corrupt records are logged and omitted, unless every
        record found in the batch is corrupt, in which case CorruptRecord is raised.

        Args:
            definition_type (str): Manifest table name.
            hashes (Iterable[int]): Unsigned 32-bit hashes; duplicates are fine.

        Returns:
            dict: Mapping of unsigned hash to decoded record.
        """
        if definition_type not in self.tables:
            logging.warning("Unknown manifest definition type requested: %s", definition_type)
            return {}
        wanted: List[int] = []
        seen = set()
        for h in hashes:
            try:
                to_signed(h)
            except InvalidIdentifier:
                logging.debug("Skipping invalid %s hash %r", definition_type, h)
                continue
            if h in seen:
                continue
            seen.add(h)
            wanted.append(h)
        if not wanted:
            return {}
        memo = self._memo[definition_type]
        out: Dict[int, DefinitionRecord] = {}
        with self._lock:
            misses = []
            for h in wanted:
                if h in memo:
                    out[h] = memo[h]
                else:
                    misses.append(h)
        if not misses:
            return out
        payloads = self._fetch_rows(definition_type, misses)
        corrupt: List[CorruptRecord] = []
        decoded: Dict[int, DefinitionRecord] = {}
        for h, payload in payloads.items():
            try:
                decoded[h] = self._decode(definition_type, h, payload)
            except CorruptRecord as e:
                logging.error("Skipping corrupt manifest record: %s", e)
                corrupt.append(e)
        if corrupt and not decoded and not out:
            raise corrupt[0]
        with self._lock:
            memo.update(decoded)
        out.update(decoded)
        return out

    def search_names(self, definition_type: str, term: str, limit: int) -> List[SearchRow]:
        """
        Case-sensitive substring match on displayProperties.name, in table order.

        Rows whose payload is not valid JSON never match.
        """
        if definition_type not in self.tables:
            return []
        query = f"""
            SELECT id,
                   json_extract(json, '$.hash'),
                   json_extract(json, '$.displayProperties.name'),
                   json_extract(json, '$.displayProperties.icon'),
                   json_extract(json, '$.itemTypeDisplayName')
            FROM (
                SELECT id, CASE WHEN json_valid(CAST(json AS TEXT)) THEN CAST(json AS TEXT) END AS json
                FROM {definition_type}
            )
            WHERE instr(json_extract(json, '$.displayProperties.name'), ?) > 0
            LIMIT ?
        """
        with self._lock:
            if self._conn is None:
                raise StoreUnavailable("Manifest snapshot is closed.")
            try:
                rows = self._conn.execute(query, (term, limit)).fetchall()
            except sqlite3.Error as e:
                logging.error("Manifest search failed for %s: %s", definition_type, e)
                raise StoreUnavailable(f"Manifest snapshot unreadable: {e}") from e
        results: List[SearchRow] = []
        for row_id, item_hash, name, icon, item_type in rows:
            if item_hash is None:
                item_hash = int(row_id) & 0xFFFFFFFF
            results.append((item_hash, name, icon, item_type))
        return results


class ManifestCache:
    """
    Thread-safe singleton holding the current Destiny 2 manifest snapshot.

    Use ManifestCache.instance() to get the shared instance.
    Lookups are read-only; load_snapshot() replaces the whole snapshot atomically.
    """
    _instance = None

    @classmethod
    def instance(cls, *args, **kwargs) -> "ManifestCache":
        """
        Get the thread-safe shared instance of ManifestCache singleton.
        Loads the snapshot at the configured storage path on first instantiation, if present.

        Returns:
            ManifestCache: Shared singleton instance.
        """
        if not hasattr(cls, "_instance_lock"):
            cls._instance_lock = threading.RLock()
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cache = cls(*args, **kwargs)
                    if os.path.exists(cache.storage_path):
                        try:
                            cache.load_snapshot()
                        except StoreUnavailable as e:
                            logging.error("Manifest snapshot at %s could not be loaded: %s", cache.storage_path, e)
                    else:
                        logging.warning("No manifest snapshot at %s; lookups unavailable until one is loaded.", cache.storage_path)
                    cls._instance = cache
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (useful for tests)."""
        if hasattr(cls, "_instance_lock"):
            with cls._instance_lock:
                if cls._instance is not None:
                    cls._instance.close()
                cls._instance = None
        else:
            cls._instance = None

    def __init__(self, storage_path: str = None):
        """
        Initialize ManifestCache.

        Args:
            storage_path (str): Default path of the manifest SQLite file.
        """
        self.storage_path = storage_path or MANIFEST_DB_PATH
        self._lock = threading.RLock()
        self._snapshot: Optional[ManifestSnapshot] = None

    @staticmethod
    def _connect(path: str) -> sqlite3.Connection:
        """
        Open a read-only SQLite connection to a manifest file, shareable across threads.

        Raises:
            StoreUnavailable: If the file is missing or cannot be opened.
        """
        if not os.path.exists(path):
            raise StoreUnavailable(f"Manifest DB not found at {path}")
        try:
            conn = sqlite3.connect(f"file:{path}?mode=ro", uri=True, check_same_thread=False)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Manifest DB at {path} could not be opened: {e}") from e
        # Read-only performance PRAGMAs (no writes)
        for pragma in ("PRAGMA temp_store=MEMORY;", "PRAGMA cache_size=-32768;", "PRAGMA mmap_size=134217728;"):
            try:
                conn.execute(pragma)
            except sqlite3.Error as e:
                logging.debug("Ignoring unsupported manifest PRAGMA %s: %s", pragma, e)
        return conn

    def load_snapshot(self, path: str = None, version: str = None) -> ManifestSnapshot:
        """
        Open a manifest SQLite file and swap it in as the current snapshot.

        The previous snapshot is retired, not closed: in-flight readers that pinned it
        finish against it and its connection is released once they drop it.

        Args:
            path (str): Manifest file; defaults to the configured storage path.
            version (str): Version label for diagnostics and refresh decisions.

        Returns:
            ManifestSnapshot: The newly active snapshot.

        Raises:
            StoreUnavailable: If the file is missing, unreadable, or lacks required tables.
                The current snapshot is left in place.
        """
        path = path or self.storage_path
        conn = self._connect(path)
        try:
            tables = [row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")]
        except sqlite3.Error as e:
            conn.close()
            raise StoreUnavailable(f"Manifest DB at {path} is not a readable SQLite file: {e}") from e
        missing = [t for t in BUNGIE_REQUIRED_DEFS if t not in tables]
        if missing:
            conn.close()
            raise StoreUnavailable(f"Manifest DB at {path} is missing tables: {', '.join(missing)}")
        snapshot = ManifestSnapshot(path, version, conn, tables)
        with self._lock:
            previous = self._snapshot
            self._snapshot = snapshot
        logging.info("Manifest snapshot loaded from %s (version=%s, previous=%s).",
                     path, version, previous.version if previous else None)
        return snapshot

    def snapshot(self) -> ManifestSnapshot:
        """
        Return the current snapshot, for callers that must read from one consistent store.

        Raises:
            StoreUnavailable: If no snapshot is loaded.
        """
        with self._lock:
            snapshot = self._snapshot
        if snapshot is None or snapshot.closed:
            raise StoreUnavailable("No manifest snapshot is loaded.")
        return snapshot

    @property
    def is_loaded(self) -> bool:
        with self._lock:
            return self._snapshot is not None and not self._snapshot.closed

    @property
    def version(self) -> Optional[str]:
        with self._lock:
            return self._snapshot.version if self._snapshot else None

    def get(self, definition_type: str, item_hash: int) -> Optional[DefinitionRecord]:
        """Resolve one unsigned hash against the current snapshot. See ManifestSnapshot.get."""
        return self.snapshot().get(definition_type, item_hash)

    def get_many(self, definition_type: str, hashes: Iterable[int]) -> Dict[int, DefinitionRecord]:
        """Resolve many unsigned hashes against the current snapshot. See ManifestSnapshot.get_many."""
        return self.snapshot().get_many(definition_type, hashes)

    def status(self) -> dict:
        """Describe the loaded snapshot for health checks."""
        with self._lock:
            snapshot = self._snapshot
        if snapshot is None or snapshot.closed:
            return {"loaded": False, "version": None, "path": self.storage_path, "loadedAt": None}
        return {
            "loaded": True,
            "version": snapshot.version,
            "path": snapshot.path,
            "loadedAt": snapshot.loaded_at.isoformat(),
        }

    def close(self) -> None:
        """
        Close the current snapshot and unload it.
        Call this explicitly when shutting down the app to release the SQLite connection.
        """
        with self._lock:
            snapshot = self._snapshot
            self._snapshot = None
        if snapshot is not None:
            snapshot.close()
