"""
Item name search against the manifest.

Matching is a case-sensitive, unanchored substring test on displayProperties.name.
An empty or whitespace-only term returns no results rather than an error.
"""
import logging
from typing import List

from constants import ITEM_DEFINITION, MAX_SEARCH_RESULTS, SEARCH_RESULT_LIMIT
from manifest_cache import ManifestCache
from models import SearchDisplayProperties, SearchResult


def search_items(manifest_cache: ManifestCache, term: str, limit: int = SEARCH_RESULT_LIMIT) -> List[SearchResult]:
    """
    Find items whose display name contains `term`.

    Args:
        manifest_cache (ManifestCache): Store to search.
        term (str): Substring to look for; used as given, no trimming or wildcards.
        limit (int): Maximum results, capped at 20.

    Returns:
        list[SearchResult]: Matches in manifest table order.

    Raises:
        StoreUnavailable: If no manifest snapshot is loaded.
    """
    if not term or not term.strip():
        return []
    limit = max(0, min(limit, MAX_SEARCH_RESULTS))
    if limit == 0:
        return []
    rows = manifest_cache.snapshot().search_names(ITEM_DEFINITION, term, limit)
    logging.debug("Search for %r matched %d items.", term, len(rows))
    return [
        SearchResult(
            hash=item_hash,
            displayProperties=SearchDisplayProperties(name=str(name), icon=icon),
            itemTypeDisplayName=item_type,
        )
        for item_hash, name, icon, item_type in rows
    ]
