# pylint: disable=line-too-long,broad-exception-caught
"""
Manifest Assistant module for Destiny 2 weapon lookups.

This module provides the ManifestAssistant class, which encapsulates business logic for:
- Hydrating weapons from the manifest (stats, fixed perks, random perk columns)
- Searching items by display name
- Raw definition lookups for diagnostics
- Keeping a manifest snapshot loaded

Every public method returns a (payload, status_code) tuple for the HTTP layer.
"""
import logging

from constants import BUNGIE_REQUIRED_DEFS
from errors import CorruptRecord, InvalidIdentifier, StoreUnavailable
from helpers import parse_identifier
from item_hydrator import ItemHydrator
from item_search import search_items
from manifest_cache import ManifestCache
from snapshot_source import BlobSnapshotSource

MANIFEST_UNAVAILABLE = "Manifest is not available. Try again once it has been loaded."


class ManifestAssistant:
    """
    Main business logic for weapon manifest operations.

    Delegates storage to ManifestCache, hydration to ItemHydrator, and snapshot pickup to
    BlobSnapshotSource.
    """

    def __init__(
        self,
        manifest_cache: ManifestCache = None,
        hydrator: ItemHydrator = None,
        snapshot_source: BlobSnapshotSource = None,
    ):
        """
        Initialize ManifestAssistant with its collaborators.

        Args:
            manifest_cache (ManifestCache): Manifest store; defaults to the shared instance.
            hydrator (ItemHydrator): Item hydrator; defaults to one bound to manifest_cache.
            snapshot_source (BlobSnapshotSource): Snapshot pickup; defaults to the configured blob.
        """
        self.manifest_cache = manifest_cache or ManifestCache.instance()
        self.hydrator = hydrator or ItemHydrator(self.manifest_cache)
        self.snapshot_source = snapshot_source or BlobSnapshotSource(self.manifest_cache)

    def ensure_manifest(self) -> bool:
        """
        Make sure a manifest snapshot is loaded, picking up the published one if none is.

        Returns:
            bool: True if a snapshot is loaded.
        """
        if self.manifest_cache.is_loaded:
            return True
        if self.snapshot_source.is_configured:
            logging.info("No manifest snapshot loaded; attempting pickup from blob storage.")
            self.snapshot_source.refresh()
        return self.manifest_cache.is_loaded

    def refresh_snapshot(self) -> bool:
        """
        Swap in a newer published snapshot if there is one.

        Returns:
            bool: True if a new snapshot was loaded.
        """
        return self.snapshot_source.refresh()

    def get_item(self, item_hash: str | int) -> tuple[dict, int]:
        """
        Hydrate a weapon for the item endpoint.

        Args:
            item_hash (str | int): Signed 32-bit item identifier.

        Returns:
            tuple: (ItemView dict or error dict, status_code)
        """
        self.ensure_manifest()
        try:
            view = self.hydrator.hydrate(item_hash)
        except InvalidIdentifier as e:
            logging.warning("Rejected item identifier %r: %s", item_hash, e)
            return {"error": str(e)}, 400
        except StoreUnavailable as e:
            logging.error("Item lookup failed, manifest unavailable: %s", e)
            return {"error": MANIFEST_UNAVAILABLE}, 503
        if view is None:
            return {"error": "Item not found in manifest."}, 404
        return view.to_json_dict(), 200

    def search(self, term: str) -> tuple[dict, int]:
        """
        Search items by display name.

        Args:
            term (str): Case-sensitive substring of the item name.

        Returns:
            tuple: (response envelope with results, status_code)
        """
        self.ensure_manifest()
        try:
            results = search_items(self.manifest_cache, term or "")
        except StoreUnavailable as e:
            logging.error("Search failed, manifest unavailable: %s", e)
            return {"error": MANIFEST_UNAVAILABLE}, 503
        logging.info("Search for %r returned %d results.", term, len(results))
        return {"Response": {"results": {"results": [r.model_dump() for r in results]}}}, 200

    def get_definition(self, item_hash: str | int, definition_type: str = None) -> tuple[dict, int]:
        """
        Resolve a hash against manifest definitions without hydration.

        Args:
            item_hash (str | int): Signed 32-bit hash.
            definition_type (str, optional): Manifest table to search. If None, all hydration tables are searched.

        Returns:
            tuple: (definition dict or error dict, status_code)
        """
        self.ensure_manifest()
        try:
            key = parse_identifier(item_hash)
        except InvalidIdentifier as e:
            return {"error": str(e)}, 400
        definition_types = [definition_type] if definition_type else BUNGIE_REQUIRED_DEFS
        try:
            snapshot = self.manifest_cache.snapshot()
            for def_type in definition_types:
                definition = snapshot.get(def_type, key)
                if definition is not None:
                    logging.info("Manifest hash %s found in %s.", key, def_type)
                    return definition.model_dump(exclude_none=True), 200
        except CorruptRecord as e:
            logging.error("Definition lookup hit a corrupt record: %s", e)
            return {"error": str(e)}, 500
        except StoreUnavailable as e:
            logging.error("Definition lookup failed, manifest unavailable: %s", e)
            return {"error": MANIFEST_UNAVAILABLE}, 503
        return {"error": "Definition not found in manifest."}, 404

    def get_status(self) -> dict:
        """Return the loaded snapshot's status for health checks."""
        return self.manifest_cache.status()
