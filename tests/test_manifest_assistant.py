"""Unit tests for ManifestAssistant."""
from unittest.mock import MagicMock

import pytest

# pylint: disable=import-error
from conftest import item_def, plug_set_def, stat_def
from constants import ITEM_DEFINITION, PLUG_SET_DEFINITION, STAT_DEFINITION
from errors import StoreUnavailable
from helpers import to_signed
from manifest_assistant import MANIFEST_UNAVAILABLE, ManifestAssistant
from manifest_cache import ManifestCache

WEAPON = 3000000000


@pytest.fixture
def assistant(make_cache):
    cache = make_cache({
        ITEM_DEFINITION: {
            WEAPON: item_def(WEAPON, "Vex Mythoclast", "Fusion Rifle", flavorText="Time breaks down."),
            1001: item_def(1001, "Linear Compensator", "Weapon Perk"),
            7: "{broken",
        },
        STAT_DEFINITION: {155624089: stat_def(155624089, "Stability")},
        PLUG_SET_DEFINITION: {501: plug_set_def(501, [1001])},
    })
    source = MagicMock()
    source.is_configured = False
    return ManifestAssistant(manifest_cache=cache, snapshot_source=source)


@pytest.fixture
def unloaded(tmp_path):
    source = MagicMock()
    source.is_configured = False
    return ManifestAssistant(manifest_cache=ManifestCache(storage_path=str(tmp_path / "none.content")), snapshot_source=source)


def test_get_item_success(assistant):
    result, status = assistant.get_item(str(to_signed(WEAPON)))
    assert status == 200
    assert result["hash"] == WEAPON
    assert result["displayProperties"]["name"] == "Vex Mythoclast"
    assert result["flavorText"] == "Time breaks down."
    assert result["perks"] == []
    assert result["randomPerkColumns"] == []


def test_get_item_not_found(assistant):
    result, status = assistant.get_item("12345")
    assert status == 404
    assert result == {"error": "Item not found in manifest."}


def test_get_item_corrupt_is_not_found(assistant):
    _, status = assistant.get_item("7")
    assert status == 404


@pytest.mark.parametrize("bad", ["abc", "3000000000", ""])
def test_get_item_invalid_identifier(assistant, bad):
    result, status = assistant.get_item(bad)
    assert status == 400
    assert "error" in result


def test_get_item_unavailable(unloaded):
    result, status = unloaded.get_item("1")
    assert status == 503
    assert result == {"error": MANIFEST_UNAVAILABLE}


def test_search_envelope(assistant):
    result, status = assistant.search("Vex")
    assert status == 200
    [hit] = result["Response"]["results"]["results"]
    assert hit["hash"] == WEAPON
    assert hit["displayProperties"]["name"] == "Vex Mythoclast"
    assert hit["itemTypeDisplayName"] == "Fusion Rifle"


def test_search_empty_term(assistant):
    result, status = assistant.search("")
    assert status == 200
    assert result["Response"]["results"]["results"] == []


def test_search_unavailable(unloaded):
    _, status = unloaded.search("Vex")
    assert status == 503


def test_get_definition_searches_all_tables(assistant):
    result, status = assistant.get_definition("155624089")
    assert status == 200
    assert result["displayProperties"]["name"] == "Stability"


def test_get_definition_by_type(assistant):
    result, status = assistant.get_definition("501", PLUG_SET_DEFINITION)
    assert status == 200
    assert result["reusablePlugItems"] == [{"plugItemHash": 1001}]
    _, status = assistant.get_definition("501", ITEM_DEFINITION)
    assert status == 404


def test_get_definition_errors(assistant, unloaded):
    assert assistant.get_definition("nope")[1] == 400
    assert assistant.get_definition("7", ITEM_DEFINITION)[1] == 500
    assert unloaded.get_definition("7")[1] == 503


def test_ensure_manifest_picks_up_published_snapshot(tmp_path):
    cache = ManifestCache(storage_path=str(tmp_path / "none.content"))
    source = MagicMock()
    source.is_configured = True
    source.refresh.return_value = False
    assistant = ManifestAssistant(manifest_cache=cache, snapshot_source=source)

    assert assistant.ensure_manifest() is False
    source.refresh.assert_called_once()


def test_ensure_manifest_skips_refresh_when_loaded(assistant):
    assistant.snapshot_source.is_configured = True
    assert assistant.ensure_manifest() is True
    assistant.snapshot_source.refresh.assert_not_called()


def test_refresh_snapshot_delegates(assistant):
    assistant.snapshot_source.refresh.return_value = True
    assert assistant.refresh_snapshot() is True


def test_get_item_propagates_unexpected_errors(assistant):
    assistant.hydrator = MagicMock()
    assistant.hydrator.hydrate.side_effect = RuntimeError("boom")
    with pytest.raises(RuntimeError):
        assistant.get_item("1")


def test_get_status(assistant, unloaded):
    assert assistant.get_status()["loaded"] is True
    assert unloaded.get_status()["loaded"] is False


def test_store_unavailable_from_hydrator_maps_to_503(assistant):
    assistant.hydrator = MagicMock()
    assistant.hydrator.hydrate.side_effect = StoreUnavailable("closed")
    assert assistant.get_item("1")[1] == 503
