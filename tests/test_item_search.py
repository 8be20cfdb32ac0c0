"""Unit tests for item name search."""
from unittest.mock import MagicMock

import pytest

# pylint: disable=import-error
from conftest import item_def
from constants import ITEM_DEFINITION
from errors import StoreUnavailable
from item_search import search_items
from manifest_cache import ManifestCache


@pytest.fixture
def cache(make_cache):
    return make_cache({ITEM_DEFINITION: {
        1: item_def(1, "Ace of Spades", "Hand Cannon"),
        2: item_def(2, "Fatebringer", "Hand Cannon"),
        3: item_def(3, "Ace Up the Sleeve", "Weapon Perk"),
        4: item_def(4, "100% Reload", "Trait"),
        5: "{broken",
        6: {"hash": 6, "itemTypeDisplayName": "Nameless"},
        3000000000: item_def(3000000000, "Vex Mythoclast", "Fusion Rifle"),
    }})


def names(results):
    return [r.displayProperties.name for r in results]


@pytest.mark.parametrize("term", ["", "   ", None])
def test_empty_term_returns_nothing(cache, term):
    assert search_items(cache, term) == []


def test_substring_match(cache):
    results = search_items(cache, "Ace")
    assert sorted(names(results)) == ["Ace Up the Sleeve", "Ace of Spades"]
    for result in results:
        assert "Ace" in result.displayProperties.name


def test_match_is_case_sensitive(cache):
    assert search_items(cache, "ace") == []
    assert names(search_items(cache, "bringer")) == ["Fatebringer"]


def test_wildcards_are_literal(cache):
    assert names(search_items(cache, "%")) == ["100% Reload"]
    assert search_items(cache, "_") == []


def test_results_carry_unsigned_hash_and_type(cache):
    [result] = search_items(cache, "Vex")
    assert result.hash == 3000000000
    assert result.itemTypeDisplayName == "Fusion Rifle"
    assert result.displayProperties.icon == "/common/destiny2_content/icons/3000000000.png"


def test_malformed_rows_are_skipped(cache):
    # Row 5 is not JSON and row 6 has no name; neither may break the query
    assert sorted(names(search_items(cache, "a"))) == ["100% Reload", "Ace of Spades", "Fatebringer", "Vex Mythoclast"]


def test_results_are_capped_at_twenty(make_cache):
    cache = make_cache({ITEM_DEFINITION: {h: item_def(h, f"Sunshot {h}", "Hand Cannon") for h in range(1, 31)}})
    assert len(search_items(cache, "Sunshot")) == 20
    assert len(search_items(cache, "Sunshot", limit=100)) == 20
    assert len(search_items(cache, "Sunshot", limit=5)) == 5


def test_unloaded_store_raises(tmp_path):
    with pytest.raises(StoreUnavailable):
        search_items(ManifestCache(storage_path=str(tmp_path / "none.content")), "Ace")


def test_term_is_passed_through_untrimmed():
    cache = MagicMock()
    cache.snapshot.return_value.search_names.return_value = [(7, "Gjallarhorn", None, "Rocket Launcher")]
    [result] = search_items(cache, " Gjallar")
    cache.snapshot.return_value.search_names.assert_called_once_with(ITEM_DEFINITION, " Gjallar", 20)
    assert result.hash == 7
    assert result.displayProperties.icon is None
