# pylint: disable=line-too-long
"""
Item hydration for Destiny 2 weapons.

ItemHydrator expands an item definition's hash references into a self-contained ItemView:
stat names, the fixed perks of each socket, and the columns of random perks a socket can roll.

Lookups that do not depend on each other (stat definitions, fixed plugs, plug sets, and the
plug items of each plug set) run on a small thread pool. Results are joined back in socket
order, so the pool never affects the order of `perks` or `randomPerkColumns`.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, FrozenSet, Iterable, List, Optional

from constants import HYDRATION_MAX_WORKERS, ITEM_DEFINITION, PLUG_SET_DEFINITION, STAT_DEFINITION
from errors import CorruptRecord, ManifestError
from helpers import parse_identifier
from item_categories import ItemCategory, perk_categories_from_config
from manifest_cache import ManifestCache, ManifestSnapshot
from models import (DefinitionRecord, ItemDefinition, ItemStatsView, ItemView, PerkView,
                    PlugSetDefinition, SocketEntry, StatView)


def is_random_perk_candidate(definition: ItemDefinition) -> bool:
    """
    A plug is shown in a random perk column only if it has display metadata, an icon,
    and is not a shader.
    """
    display = definition.displayProperties
    if display is None or display.is_empty():
        return False
    if not display.hasIcon:
        return False
    return definition.category != ItemCategory.SHADER


class ItemHydrator:
    """
    Builds ItemViews from the manifest.

    Args:
        manifest_cache (ManifestCache): Store to read from; defaults to the shared instance.
        perk_categories (Iterable[ItemCategory]): Categories a socket's fixed plug must have
            to be listed in `perks`. Defaults to the PERK_CATEGORIES setting (weapon perks).
        max_workers (int): Upper bound on concurrent lookups within one hydration.
    """

    def __init__(
        self,
        manifest_cache: ManifestCache = None,
        perk_categories: Optional[Iterable[ItemCategory]] = None,
        max_workers: int = HYDRATION_MAX_WORKERS,
    ):
        self.manifest_cache = manifest_cache or ManifestCache.instance()
        self.perk_categories: FrozenSet[ItemCategory] = frozenset(perk_categories) if perk_categories else perk_categories_from_config()
        self.max_workers = max(1, max_workers)

    def hydrate(self, identifier: int | str) -> Optional[ItemView]:
        """
        Resolve an item identifier into a fully hydrated ItemView.

        Args:
            identifier (int | str): Signed 32-bit item identifier as issued by the Bungie API.

        Returns:
            ItemView or None: The hydrated item, or None if the item is not in the manifest.

        Raises:
            InvalidIdentifier: If the identifier is outside the signed 32-bit domain.
            StoreUnavailable: If no manifest snapshot is loaded.
        """
        item_hash = parse_identifier(identifier)
        # Pin one snapshot so a concurrent swap cannot mix two manifests into one view
        snapshot = self.manifest_cache.snapshot()
        try:
            item_def = snapshot.get(ITEM_DEFINITION, item_hash)
        except CorruptRecord as e:
            logging.error("Item %s cannot be hydrated: %s", item_hash, e)
            return None
        if item_def is None:
            logging.info("Item %s not found in manifest.", item_hash)
            return None

        stat_entries = item_def.stats.stats if item_def.stats else {}
        sockets = item_def.sockets.socketEntries if item_def.sockets else []
        stat_hashes = [entry.statHash for entry in stat_entries.values() if entry.statHash is not None]
        fixed_hashes = [s.fixed_plug_hash for s in sockets if s.fixed_plug_hash]
        plug_set_hashes = [s.plug_set_hash for s in sockets if s.plug_set_hash]

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            stat_future = pool.submit(self._lookup, snapshot, STAT_DEFINITION, stat_hashes)
            fixed_future = pool.submit(self._lookup, snapshot, ITEM_DEFINITION, fixed_hashes)
            plug_sets: Dict[int, PlugSetDefinition] = self._lookup(snapshot, PLUG_SET_DEFINITION, plug_set_hashes)
            multi_option = [h for h, plug_set in plug_sets.items() if len(plug_set.reusablePlugItems) > 1]
            columns = dict(zip(
                multi_option,
                pool.map(lambda h: self._build_column(snapshot, plug_sets[h]), multi_option),
            ))
            stat_defs = stat_future.result()
            fixed_plugs = fixed_future.result()

        return ItemView(
            hash=item_def.hash,
            displayProperties=item_def.displayProperties,
            itemTypeDisplayName=item_def.itemTypeDisplayName,
            flavorText=item_def.flavorText,
            stats=self._build_stats(stat_entries, stat_defs) if item_def.stats is not None else None,
            perks=self._build_perks(sockets, fixed_plugs),
            randomPerkColumns=self._build_columns(sockets, columns),
        )

    get_item_by_hash = hydrate

    @staticmethod
    def _lookup(snapshot: ManifestSnapshot, definition_type: str, hashes: List[int]) -> Dict[int, DefinitionRecord]:
        """Batch lookup that degrades to an empty result instead of failing the hydration."""
        if not hashes:
            return {}
        try:
            return snapshot.get_many(definition_type, hashes)
        except ManifestError as e:
            logging.warning("Enrichment lookup in %s failed for %d hashes: %s", definition_type, len(hashes), e)
            return {}

    def _build_column(self, snapshot: ManifestSnapshot, plug_set: PlugSetDefinition) -> List[PerkView]:
        plug_hashes = [p.plugItemHash for p in plug_set.reusablePlugItems]
        plugs = self._lookup(snapshot, ITEM_DEFINITION, plug_hashes)
        column = []
        for h in plug_hashes:
            plug = plugs.get(h)
            if plug is not None and is_random_perk_candidate(plug):
                column.append(PerkView.from_definition(plug))
        return column

    @staticmethod
    def _build_stats(stat_entries, stat_defs: Dict[int, DefinitionRecord]) -> ItemStatsView:
        stats: Dict[str, StatView] = {}
        for stat_id, entry in stat_entries.items():
            data = entry.model_dump()
            stat_def = stat_defs.get(entry.statHash) if entry.statHash is not None else None
            if stat_def is not None:
                data["displayProperties"] = stat_def.displayProperties
            else:
                logging.debug("Stat definition %s missing; keeping raw value.", entry.statHash)
            stats[stat_id] = StatView(**data)
        return ItemStatsView(stats=stats)

    def _build_perks(self, sockets: List[SocketEntry], fixed_plugs: Dict[int, DefinitionRecord]) -> List[PerkView]:
        perks = []
        for socket in sockets:
            plug = fixed_plugs.get(socket.fixed_plug_hash) if socket.fixed_plug_hash else None
            if plug is not None and plug.category in self.perk_categories:
                perks.append(PerkView.from_definition(plug))
        return perks

    @staticmethod
    def _build_columns(sockets: List[SocketEntry], columns: Dict[int, List[PerkView]]) -> List[List[PerkView]]:
        result = []
        for socket in sockets:
            column = columns.get(socket.plug_set_hash) if socket.plug_set_hash else None
            if column:
                result.append(list(column))
        return result
