"""Shared fixtures: temporary Destiny 2 manifest SQLite files."""
import json
import sqlite3

import pytest

# pylint: disable=import-error
from constants import ITEM_DEFINITION, PLUG_SET_DEFINITION, STAT_DEFINITION
from helpers import to_signed
from manifest_cache import ManifestCache


def write_manifest(path, tables, signed_ids=True):
    """
    Write a manifest SQLite file shaped like Bungie's: one (id, json) table per definition.

    Ids are stored in signed form by default, as in the real manifest. String payloads are
    stored verbatim so tests can plant corrupt rows.
    """
    conn = sqlite3.connect(str(path))
    try:
        for table in {ITEM_DEFINITION, STAT_DEFINITION, PLUG_SET_DEFINITION, *tables}:
            conn.execute(f"CREATE TABLE IF NOT EXISTS {table} (id INTEGER PRIMARY KEY NOT NULL, json BLOB)")
        for table, rows in tables.items():
            for item_hash, payload in rows.items():
                if not isinstance(payload, str):
                    payload = json.dumps(payload, ensure_ascii=False)
                row_id = to_signed(item_hash) if signed_ids else item_hash
                conn.execute(f"INSERT INTO {table} (id, json) VALUES (?, ?)", (row_id, payload))
        conn.commit()
    finally:
        conn.close()
    return str(path)


def item_def(item_hash, name, item_type, has_icon=True, **extra):
    """Build a DestinyInventoryItemDefinition payload."""
    definition = {
        "hash": item_hash,
        "displayProperties": {
            "name": name,
            "description": f"{name} description",
            "icon": f"/common/destiny2_content/icons/{item_hash}.png" if has_icon else None,
            "hasIcon": has_icon,
        },
        "itemTypeDisplayName": item_type,
    }
    definition.update(extra)
    return definition


def stat_def(stat_hash, name):
    return {"hash": stat_hash, "displayProperties": {"name": name, "description": "", "hasIcon": False}}


def plug_set_def(plug_set_hash, plug_hashes):
    return {"hash": plug_set_hash, "reusablePlugItems": [{"plugItemHash": h} for h in plug_hashes]}


@pytest.fixture
def make_cache(tmp_path):
    """Factory: write a manifest and return a ManifestCache with it loaded."""
    caches = []

    def _make(tables, name="manifest.content", version="v1", signed_ids=True):
        path = write_manifest(tmp_path / name, tables, signed_ids=signed_ids)
        cache = ManifestCache(storage_path=path)
        cache.load_snapshot(path, version)
        caches.append(cache)
        return cache

    yield _make
    for cache in caches:
        cache.close()
