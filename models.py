# pylint: disable=line-too-long
"""
Models for Destiny 2 manifest definitions and hydrated item views.

This module defines Pydantic models for:
- Definition records decoded at the manifest store boundary (items, stats, plug sets).
- ItemView and SearchResult, the shapes returned to API clients.

Only the fields hydration needs are modelled; everything else in a manifest row is ignored
when decoding, except on DisplayProperties and stat entries, which pass through verbatim.
"""
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from constants import ITEM_DEFINITION, PLUG_SET_DEFINITION, STAT_DEFINITION
from item_categories import ItemCategory, classify_category


# --- Definition records ---
class DisplayProperties(BaseModel):
    """
    displayProperties block shared by every definition type.

    Attributes:
        name (str): Localized display name.
        description (str): Localized description.
        icon (Optional[str]): Icon path relative to https://www.bungie.net.
        hasIcon (bool): Whether the icon path points at a real icon.
    """
    model_config = ConfigDict(extra="allow")

    name: str = ""
    description: str = ""
    icon: Optional[str] = None
    hasIcon: bool = False

    def is_empty(self) -> bool:
        """True when the block carries neither a name nor an icon."""
        return not self.name and not self.icon


class DefinitionRecord(BaseModel):
    """Base for all manifest definitions; `hash` is the unsigned 32-bit table key."""
    hash: int
    displayProperties: Optional[DisplayProperties] = None


class GenericDefinition(DefinitionRecord):
    """Definition from a table without a dedicated model; keeps every field."""
    model_config = ConfigDict(extra="allow")


class StatEntry(BaseModel):
    """One entry of an item's stats.stats mapping ({statHash, value, minimum, maximum, ...})."""
    model_config = ConfigDict(extra="allow")

    statHash: Optional[int] = None
    value: Optional[Union[int, float]] = None


class ItemStatBlock(BaseModel):
    stats: Dict[str, StatEntry] = dict()


class SocketEntry(BaseModel):
    """
    One socket on an item. A hash of 0 means the socket has no such binding.
    """
    singleInitialItemHash: Optional[int] = None
    reusablePlugSetHash: Optional[int] = None
    randomizedPlugSetHash: Optional[int] = None

    @property
    def fixed_plug_hash(self) -> Optional[int]:
        return self.singleInitialItemHash or None

    @property
    def plug_set_hash(self) -> Optional[int]:
        """Plug set offered by the socket; the reusable set wins over the randomized one."""
        return self.reusablePlugSetHash or self.randomizedPlugSetHash or None


class ItemSocketBlock(BaseModel):
    socketEntries: List[SocketEntry] = list()


class ItemDefinition(DefinitionRecord):
    """
    DestinyInventoryItemDefinition: weapons as well as the plugs (perks, mods, shaders) they socket.

    Attributes:
        itemTypeDisplayName (Optional[str]): Localized category label.
        flavorText (Optional[str]): Lore blurb.
        stats (Optional[ItemStatBlock]): Investment/display stats.
        sockets (Optional[ItemSocketBlock]): Socket layout.
        category (ItemCategory): Classified itemTypeDisplayName; never serialized.
    """
    itemTypeDisplayName: Optional[str] = None
    flavorText: Optional[str] = None
    stats: Optional[ItemStatBlock] = None
    sockets: Optional[ItemSocketBlock] = None
    category: ItemCategory = Field(default=ItemCategory.OTHER, exclude=True)

    @model_validator(mode="after")
    def classify_label(self) -> "ItemDefinition":
        self.category = classify_category(self.itemTypeDisplayName)
        return self


class StatDefinition(DefinitionRecord):
    """DestinyStatDefinition; only displayProperties is used."""


class PlugSetItem(BaseModel):
    plugItemHash: int


class PlugSetDefinition(DefinitionRecord):
    """DestinyPlugSetDefinition: the ordered pool of plugs a socket can roll or swap to."""
    reusablePlugItems: List[PlugSetItem] = list()


RECORD_MODELS: Dict[str, Type[DefinitionRecord]] = {
    ITEM_DEFINITION: ItemDefinition,
    STAT_DEFINITION: StatDefinition,
    PLUG_SET_DEFINITION: PlugSetDefinition,
}


def record_model_for(definition_type: str) -> Type[DefinitionRecord]:
    """Return the model used to decode rows of `definition_type`."""
    return RECORD_MODELS.get(definition_type, GenericDefinition)


# --- Views ---
class PerkView(BaseModel):
    hash: int
    displayProperties: Optional[DisplayProperties] = None

    @classmethod
    def from_definition(cls, definition: ItemDefinition) -> "PerkView":
        return cls(hash=definition.hash, displayProperties=definition.displayProperties)


class StatView(BaseModel):
    """A stat entry from the item, plus the stat's own displayProperties when resolvable."""
    model_config = ConfigDict(extra="allow")

    statHash: Optional[int] = None
    value: Optional[Union[int, float]] = None
    displayProperties: Optional[DisplayProperties] = None


class ItemStatsView(BaseModel):
    stats: Dict[str, StatView] = dict()


class ItemView(BaseModel):
    """
    Fully hydrated item returned by the item endpoint.

    Attributes:
        hash (int): Unsigned item hash.
        displayProperties (Optional[DisplayProperties]): Item name, icon, description.
        itemTypeDisplayName (Optional[str]): Category label, e.g. "Auto Rifle".
        flavorText (Optional[str]): Lore blurb.
        stats (Optional[ItemStatsView]): Stats keyed like the definition's stats.stats.
        perks (List[PerkView]): Fixed perks, in socket order.
        randomPerkColumns (List[List[PerkView]]): One non-empty column per multi-option plug set, in socket order.
    """
    hash: int
    displayProperties: Optional[DisplayProperties] = None
    itemTypeDisplayName: Optional[str] = None
    flavorText: Optional[str] = None
    stats: Optional[ItemStatsView] = None
    perks: List[PerkView] = list()
    randomPerkColumns: List[List[PerkView]] = list()

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize for the API; absent optional values are omitted rather than null."""
        return self.model_dump(exclude_none=True)


class SearchDisplayProperties(BaseModel):
    name: Optional[str] = None
    icon: Optional[str] = None


class SearchResult(BaseModel):
    """Projection of an item definition returned by name search."""
    hash: Optional[int] = None
    displayProperties: SearchDisplayProperties = SearchDisplayProperties()
    itemTypeDisplayName: Optional[str] = None
