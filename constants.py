"""
Module containing constants for the Destiny 2 weapon manifest service.
"""

import logging
import os


def env_int(name: str, default: int, minimum: int = 0) -> int:
    """Read an integer setting, falling back to `default` when it is unset or malformed."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip(), 10)
    except ValueError:
        logging.warning("Ignoring invalid %s=%r; using %d.", name, raw, default)
        return default
    if value < minimum:
        logging.warning("Ignoring out-of-range %s=%d; using %d.", name, value, default)
        return default
    return value


# Manifest snapshot location (ephemeral storage on the Function host)
MANIFEST_DB_PATH = os.getenv("MANIFEST_DB_PATH", "/tmp/manifest.content")

# Azure Blob location the ingestion job publishes snapshots to
STORAGE_CONNECTION_STRING = os.getenv("AZURE_STORAGE_CONNECTION_STRING")
MANIFEST_BLOB_CONTAINER = os.getenv("MANIFEST_BLOB_CONTAINER", "manifest")
MANIFEST_BLOB_NAME = os.getenv("MANIFEST_BLOB_NAME", "manifest.content")
# NCRONTAB, every 30 minutes
MANIFEST_REFRESH_SCHEDULE = os.getenv("MANIFEST_REFRESH_SCHEDULE", "0 */30 * * * *")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Search results are capped at 20 no matter what the environment asks for
MAX_SEARCH_RESULTS = 20
SEARCH_RESULT_LIMIT = min(env_int("SEARCH_RESULT_LIMIT", MAX_SEARCH_RESULTS), MAX_SEARCH_RESULTS)

# Worker limit for the per-hydration lookup fan-out
HYDRATION_MAX_WORKERS = env_int("HYDRATION_MAX_WORKERS", 4, minimum=1)

# Comma-separated ItemCategory names that count as fixed perks
PERK_CATEGORIES = os.getenv("PERK_CATEGORIES", "WEAPON_PERK")

# Bungie manifest definition tables used for hydration
ITEM_DEFINITION = "DestinyInventoryItemDefinition"   # weapons, perks, mods, shaders
STAT_DEFINITION = "DestinyStatDefinition"            # stat names (Range, Stability, etc.)
PLUG_SET_DEFINITION = "DestinyPlugSetDefinition"     # reusable/randomized perk pools

BUNGIE_REQUIRED_DEFS = [
    ITEM_DEFINITION,
    STAT_DEFINITION,
    PLUG_SET_DEFINITION,
]

# SQLite allows ~999 bound parameters; each hash is bound twice (u32 + i32)
SQLITE_CHUNK_SIZE = 400

# itemTypeDisplayName labels per category, for the locales the manifest is served in
CATEGORY_LABELS = {
    "WEAPON_PERK": ["Weapon Perk"],
    "TRAIT": ["Trait", "特性"],
    "INTRINSIC": ["Intrinsic", "内在効果"],
    "ORIGIN_TRAIT": ["Origin Trait", "オリジン特性"],
    "FRAME": ["Frame", "フレーム"],
    "SHADER": ["Shader", "シェーダー"],
}
