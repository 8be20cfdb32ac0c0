"""Unit tests for item category classification."""
import pytest

# pylint: disable=import-error
from item_categories import ItemCategory, classify_category, perk_categories_from_config


@pytest.mark.parametrize("label, expected", [
    ("Weapon Perk", ItemCategory.WEAPON_PERK),
    ("Shader", ItemCategory.SHADER),
    ("シェーダー", ItemCategory.SHADER),
    ("Origin Trait", ItemCategory.ORIGIN_TRAIT),
    ("オリジン特性", ItemCategory.ORIGIN_TRAIT),
    ("特性", ItemCategory.TRAIT),
    ("内在効果", ItemCategory.INTRINSIC),
    ("フレーム", ItemCategory.FRAME),
    ("Hand Cannon", ItemCategory.OTHER),
])
def test_classify_known_labels(label, expected):
    assert classify_category(label) == expected


def test_classify_normalizes_case_width_and_whitespace():
    assert classify_category("  shader ") == ItemCategory.SHADER
    # Full-width Latin letters fold to ASCII under NFKC
    assert classify_category("Ｓｈａｄｅｒ") == ItemCategory.SHADER


@pytest.mark.parametrize("label", [None, ""])
def test_classify_missing_label_is_other(label):
    assert classify_category(label) == ItemCategory.OTHER


def test_perk_categories_default_is_weapon_perk():
    assert perk_categories_from_config("WEAPON_PERK") == frozenset({ItemCategory.WEAPON_PERK})


def test_perk_categories_parses_list_and_skips_unknown():
    parsed = perk_categories_from_config("trait, INTRINSIC,origin_trait,FRAME,bogus")
    assert parsed == frozenset({
        ItemCategory.TRAIT, ItemCategory.INTRINSIC, ItemCategory.ORIGIN_TRAIT, ItemCategory.FRAME,
    })


def test_perk_categories_empty_falls_back_to_weapon_perk():
    assert perk_categories_from_config("") == frozenset({ItemCategory.WEAPON_PERK})
