"""Search history and category preferences.

The history is an ordered, newest-first log of successful searches capped at
20 items. Repeating a search (same two locations within the flat 0.001
degree tolerance and the same category set) replaces the old entry and moves
it to the front instead of adding a duplicate.

Both stores keep their state in memory and write a JSON snapshot through a
``KeyValueStore`` after every mutation. A failing write is logged and the
in-memory state is kept.
"""

import json
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Iterable
from uuid import uuid4

from pydantic import ValidationError

from meetpoint.models import HistoryItem, Location, SearchParams, VenueCategory
from meetpoint.services.storage import KeyValueStore, StorageError, namespaced_key
from meetpoint.utils.geo import coordinate_key, is_same_location

logger = logging.getLogger(__name__)

HISTORY_KEY = namespaced_key("search-history")
PREFERENCES_KEY = namespaced_key("category-preferences")
EXPORT_VERSION = "1.0"
DEFAULT_MAX_ITEMS = 20


def _parse_items(raw_items: Iterable[Any]) -> list[HistoryItem]:
    """Validate raw history rows, dropping the malformed ones."""
    items: list[HistoryItem] = []
    for raw in raw_items:
        try:
            items.append(HistoryItem.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"[HISTORY] Dropping malformed history item: {e.error_count()} errors")
    return items


def _is_similar(item: HistoryItem, location1: Location, location2: Location, categories: set) -> bool:
    return (
        is_same_location(item.location1, location1)
        and is_same_location(item.location2, location2)
        and set(item.categories) == categories
    )


class SearchHistoryStore:
    """Persisted, deduplicated, newest-first search history."""

    def __init__(
        self,
        storage: KeyValueStore,
        max_items: int = DEFAULT_MAX_ITEMS,
        storage_key: str = HISTORY_KEY,
    ) -> None:
        self._storage = storage
        self._max_items = max_items
        self._key = storage_key
        self._items: list[HistoryItem] = []

    def __len__(self) -> int:
        return len(self._items)

    @property
    def max_items(self) -> int:
        return self._max_items

    # ── Persistence ───────────────────────────────────────────────────

    async def load(self) -> None:
        """Restore history from storage. Malformed rows are discarded."""
        try:
            stored = await self._storage.get(self._key)
        except StorageError as e:
            logger.error(f"[HISTORY] Failed to load search history: {e}")
            self._items = []
            return

        if not isinstance(stored, list):
            self._items = []
            return
        self._items = _parse_items(stored)[: self._max_items]
        logger.info(f"[HISTORY] Loaded {len(self._items)} history items")

    async def _save(self) -> None:
        payload = [item.model_dump(mode="json") for item in self._items]
        try:
            await self._storage.set(self._key, payload)
        except StorageError as e:
            logger.error(f"[HISTORY] Failed to save search history: {e}")

    # ── Mutations ─────────────────────────────────────────────────────

    def _find_similar(self, location1: Location, location2: Location, categories: set) -> int:
        for index, item in enumerate(self._items):
            if _is_similar(item, location1, location2, categories):
                return index
        return -1

    async def add(self, params: SearchParams, result_count: int) -> HistoryItem:
        """Record a successful search at the front of the history.

        A matching earlier search is removed first, so repeating a search
        refreshes its timestamp and result count instead of duplicating it.
        """
        if params.location1 is None or params.location2 is None or not params.categories:
            raise ValueError("History items need two locations and at least one category")

        item = HistoryItem(
            id=uuid4().hex,
            location1=params.location1,
            location2=params.location2,
            categories=list(params.categories),
            timestamp=datetime.now(timezone.utc),
            result_count=result_count,
        )

        existing = self._find_similar(params.location1, params.location2, set(params.categories))
        if existing >= 0:
            self._items.pop(existing)

        self._items.insert(0, item)
        del self._items[self._max_items :]

        await self._save()
        return item

    async def remove(self, item_id: str) -> bool:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                self._items.pop(index)
                await self._save()
                return True
        return False

    async def clear(self) -> None:
        self._items = []
        await self._save()

    # ── Queries ───────────────────────────────────────────────────────

    def get_history(self, limit: int | None = None) -> list[HistoryItem]:
        items = list(self._items)
        return items[:limit] if limit else items

    def get_item(self, item_id: str) -> HistoryItem | None:
        return next((item for item in self._items if item.id == item_id), None)

    def get_recent(self, count: int = 5) -> list[HistoryItem]:
        return self._items[:count]

    def search(self, query: str) -> list[HistoryItem]:
        """Case-insensitive substring search over addresses and category names."""
        if not query or not query.strip():
            return self.get_history()

        needle = query.strip().lower()

        def matches(item: HistoryItem) -> bool:
            if needle in item.location1.address.lower():
                return True
            if needle in item.location2.address.lower():
                return True
            return any(needle in c.display_name.lower() for c in item.categories)

        return [item for item in self._items if matches(item)]

    def get_frequent_locations(self, limit: int = 10) -> list[Location]:
        """Most used locations across both slots of every search.

        Locations are grouped by coordinates rounded to 4 decimals. Ties are
        broken by recency because the log is iterated newest-first and the
        sort is stable.
        """
        counts: OrderedDict[str, list] = OrderedDict()
        for item in self._items:
            for location in (item.location1, item.location2):
                key = coordinate_key(location)
                if key in counts:
                    counts[key][1] += 1
                else:
                    counts[key] = [location, 1]

        ranked = sorted(counts.values(), key=lambda entry: entry[1], reverse=True)
        return [location for location, _ in ranked[:limit]]

    def get_frequent_category_combinations(self, limit: int = 5) -> list[list[VenueCategory]]:
        """Most used category sets, ties broken by recency."""
        counts: OrderedDict[str, list] = OrderedDict()
        for item in self._items:
            key = item.category_key
            if key in counts:
                counts[key][1] += 1
            else:
                counts[key] = [list(item.categories), 1]

        ranked = sorted(counts.values(), key=lambda entry: entry[1], reverse=True)
        return [categories for categories, _ in ranked[:limit]]

    # ── Import / export ───────────────────────────────────────────────

    def export_history(self) -> str:
        """Serialize the history as a versioned JSON snapshot."""
        return json.dumps(
            {
                "version": EXPORT_VERSION,
                "exported_at": datetime.now(timezone.utc).isoformat(),
                "history": [item.model_dump(mode="json") for item in self._items],
            },
            indent=2,
        )

    async def import_history(self, data: str | dict) -> int:
        """Merge an exported snapshot into the history.

        Malformed items are discarded. Imported items go in front of the
        existing ones, repeats are dropped with the same similarity rule
        ``add`` uses, and the cap is re-applied.

        Returns:
            The number of valid items found in the snapshot; 0 means nothing
            was imported.
        """
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                logger.warning(f"[HISTORY] Import rejected, invalid JSON: {e}")
                return 0

        raw_items = data.get("history") if isinstance(data, dict) else None
        if not isinstance(raw_items, list):
            logger.warning("[HISTORY] Import rejected, no history list in payload")
            return 0

        imported = _parse_items(raw_items)
        if not imported:
            return 0

        merged: list[HistoryItem] = []
        for item in imported + self._items:
            duplicate = any(
                _is_similar(kept, item.location1, item.location2, set(item.categories))
                for kept in merged
            )
            if not duplicate:
                merged.append(item)

        self._items = merged[: self._max_items]
        await self._save()
        logger.info(f"[HISTORY] Imported {len(imported)} items, {len(self._items)} kept")
        return len(imported)


class CategoryPreferencesStore:
    """Remembers the categories the user last searched with."""

    def __init__(self, storage: KeyValueStore, storage_key: str = PREFERENCES_KEY) -> None:
        self._storage = storage
        self._key = storage_key
        self._categories: list[VenueCategory] = []

    async def load(self) -> None:
        try:
            stored = await self._storage.get(self._key)
        except StorageError as e:
            logger.error(f"[HISTORY] Failed to load category preferences: {e}")
            stored = None

        categories: list[VenueCategory] = []
        for value in stored if isinstance(stored, list) else []:
            try:
                categories.append(VenueCategory(value))
            except ValueError:
                logger.warning(f"[HISTORY] Ignoring unknown stored category {value!r}")
        self._categories = categories

    def get(self) -> list[VenueCategory]:
        return list(self._categories)

    async def set(self, categories: Iterable[VenueCategory]) -> list[VenueCategory]:
        self._categories = sorted(set(categories), key=lambda c: c.value)
        try:
            await self._storage.set(self._key, [c.value for c in self._categories])
        except StorageError as e:
            logger.error(f"[HISTORY] Failed to save category preferences: {e}")
        return self.get()
