"""
Item category classification.

Manifest records carry a localized ``itemTypeDisplayName`` ("Shader", "シェーダー", ...).
Records are classified once, when decoded, so that filters downstream compare
ItemCategory values instead of raw strings.
"""
import logging
import unicodedata
from enum import Enum
from functools import lru_cache
from typing import Dict, FrozenSet, Optional

from constants import CATEGORY_LABELS, PERK_CATEGORIES


class ItemCategory(str, Enum):
    """Closed set of item categories the hydrator cares about."""
    WEAPON_PERK = "WEAPON_PERK"
    TRAIT = "TRAIT"
    INTRINSIC = "INTRINSIC"
    ORIGIN_TRAIT = "ORIGIN_TRAIT"
    FRAME = "FRAME"
    SHADER = "SHADER"
    OTHER = "OTHER"


def normalize_label(label: str) -> str:
    """NFKC-normalize, trim, and case-fold a category label."""
    return unicodedata.normalize("NFKC", label).strip().casefold()


@lru_cache(maxsize=None)
def _label_index() -> Dict[str, ItemCategory]:
    index: Dict[str, ItemCategory] = {}
    for category_name, labels in CATEGORY_LABELS.items():
        category = ItemCategory[category_name]
        for label in labels:
            index[normalize_label(label)] = category
    return index


def classify_category(label: Optional[str]) -> ItemCategory:
    """
    Classify an itemTypeDisplayName into an ItemCategory.

    Args:
        label (str | None): Raw itemTypeDisplayName from the manifest, in any supported locale.

    Returns:
        ItemCategory: Matching category, or ItemCategory.OTHER for unknown/missing labels.
    """
    if not label:
        return ItemCategory.OTHER
    return _label_index().get(normalize_label(label), ItemCategory.OTHER)


def perk_categories_from_config(value: str = PERK_CATEGORIES) -> FrozenSet[ItemCategory]:
    """
    Parse a comma-separated list of ItemCategory names (e.g. "TRAIT,INTRINSIC,FRAME").

    Unknown names are logged and ignored. An empty result falls back to WEAPON_PERK.
    """
    categories = set()
    for raw in (value or "").split(","):
        name = raw.strip().upper()
        if not name:
            continue
        try:
            categories.add(ItemCategory[name])
        except KeyError:
            logging.warning("Ignoring unknown perk category in configuration: %s", raw)
    if not categories:
        categories.add(ItemCategory.WEAPON_PERK)
    return frozenset(categories)
