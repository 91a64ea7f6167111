"""Unit tests for search history and category preferences."""

import json
from typing import Any

import pytest

from meetpoint.models import Location, SearchParams, VenueCategory
from meetpoint.services.history import CategoryPreferencesStore, SearchHistoryStore
from meetpoint.services.history.service import HISTORY_KEY, PREFERENCES_KEY
from meetpoint.services.storage import InMemoryKeyValueStore, KeyValueStore, StorageError


def params(
    lat1: float = 39.9388,
    lng1: float = 116.4574,
    lat2: float = 39.9833,
    lng2: float = 116.3167,
    categories: set[VenueCategory] | None = None,
    address1: str = "Chaoyang, Beijing",
    address2: str = "Haidian, Beijing",
) -> SearchParams:
    return SearchParams(
        location1=Location(address=address1, latitude=lat1, longitude=lng1),
        location2=Location(address=address2, latitude=lat2, longitude=lng2),
        categories=categories or {VenueCategory.RESTAURANT},
    )


class BrokenStore(KeyValueStore):
    """Storage whose every call fails."""

    async def get(self, key: str) -> Any | None:
        raise StorageError("down")

    async def set(self, key: str, value: Any) -> None:
        raise StorageError("down")

    async def delete(self, key: str) -> bool:
        raise StorageError("down")


class TestSearchHistoryStoreAdd:
    """Tests for recording searches."""

    def setup_method(self) -> None:
        self.storage = InMemoryKeyValueStore()
        self.history = SearchHistoryStore(self.storage)

    @pytest.mark.asyncio
    async def test_add_prepends(self) -> None:
        await self.history.add(params(categories={VenueCategory.CAFE}), 3)
        second = await self.history.add(params(categories={VenueCategory.BAR}), 7)
        items = self.history.get_history()
        assert len(items) == 2
        assert items[0].id == second.id
        assert items[0].result_count == 7

    @pytest.mark.asyncio
    async def test_capped_at_twenty(self) -> None:
        for i in range(25):
            await self.history.add(params(lat1=10 + i * 0.01), i)
        items = self.history.get_history()
        assert len(items) == 20
        assert items[0].result_count == 24
        assert items[-1].result_count == 5

    @pytest.mark.asyncio
    async def test_repeat_moves_to_front(self) -> None:
        await self.history.add(params(categories={VenueCategory.CAFE, VenueCategory.BAR}), 1)
        await self.history.add(params(categories={VenueCategory.PARK}), 2)
        await self.history.add(
            params(lat1=39.93885, categories={VenueCategory.BAR, VenueCategory.CAFE}), 9
        )
        items = self.history.get_history()
        assert len(items) == 2
        assert items[0].categories == [VenueCategory.BAR, VenueCategory.CAFE]
        assert items[0].result_count == 9
        assert items[1].categories == [VenueCategory.PARK]

    @pytest.mark.asyncio
    async def test_different_categories_are_kept(self) -> None:
        await self.history.add(params(categories={VenueCategory.CAFE}), 1)
        await self.history.add(params(categories={VenueCategory.CAFE, VenueCategory.BAR}), 1)
        assert len(self.history) == 2

    @pytest.mark.asyncio
    async def test_requires_locations_and_categories(self) -> None:
        with pytest.raises(ValueError):
            await self.history.add(SearchParams(categories={VenueCategory.CAFE}), 0)
        with pytest.raises(ValueError):
            await self.history.add(params().model_copy(update={"categories": set()}), 0)

    @pytest.mark.asyncio
    async def test_persists_after_mutation(self) -> None:
        await self.history.add(params(), 4)
        stored = await self.storage.get(HISTORY_KEY)
        assert len(stored) == 1
        assert stored[0]["result_count"] == 4

    @pytest.mark.asyncio
    async def test_remove_and_clear(self) -> None:
        item = await self.history.add(params(categories={VenueCategory.CAFE}), 1)
        await self.history.add(params(categories={VenueCategory.BAR}), 1)
        assert await self.history.remove(item.id) is True
        assert await self.history.remove(item.id) is False
        assert len(self.history) == 1
        await self.history.clear()
        assert self.history.get_history() == []
        assert await self.storage.get(HISTORY_KEY) == []

    @pytest.mark.asyncio
    async def test_storage_failure_keeps_memory_state(self) -> None:
        history = SearchHistoryStore(BrokenStore())
        await history.add(params(), 2)
        assert len(history) == 1


class TestSearchHistoryStoreLoad:
    """Tests for restoring history from storage."""

    @pytest.mark.asyncio
    async def test_round_trip(self) -> None:
        storage = InMemoryKeyValueStore()
        first = SearchHistoryStore(storage)
        item = await first.add(params(), 5)

        second = SearchHistoryStore(storage)
        await second.load()
        assert second.get_item(item.id) == item

    @pytest.mark.asyncio
    async def test_malformed_rows_are_dropped(self) -> None:
        storage = InMemoryKeyValueStore()
        first = SearchHistoryStore(storage)
        await first.add(params(), 5)
        stored = await storage.get(HISTORY_KEY)
        stored.append({"id": "broken", "categories": []})
        stored.append("not even a dict")
        await storage.set(HISTORY_KEY, stored)

        second = SearchHistoryStore(storage)
        await second.load()
        assert len(second) == 1

    @pytest.mark.asyncio
    async def test_non_list_payload(self) -> None:
        storage = InMemoryKeyValueStore()
        await storage.set(HISTORY_KEY, {"unexpected": True})
        history = SearchHistoryStore(storage)
        await history.load()
        assert len(history) == 0

    @pytest.mark.asyncio
    async def test_storage_failure_starts_empty(self) -> None:
        history = SearchHistoryStore(BrokenStore())
        await history.load()
        assert len(history) == 0


class TestSearchHistoryStoreQueries:
    """Tests for search, recent and frequency queries."""

    def setup_method(self) -> None:
        self.history = SearchHistoryStore(InMemoryKeyValueStore())

    @pytest.mark.asyncio
    async def test_search_by_address_case_insensitive(self) -> None:
        await self.history.add(params(address1="Wangfujing Street"), 1)
        await self.history.add(params(lat1=31.23, lng1=121.47, address1="The Bund, Shanghai"), 1)
        results = self.history.search("wangFUjing")
        assert len(results) == 1
        assert results[0].location1.address == "Wangfujing Street"

    @pytest.mark.asyncio
    async def test_search_by_category_display_name(self) -> None:
        await self.history.add(params(categories={VenueCategory.MOVIE_THEATER}), 1)
        await self.history.add(params(categories={VenueCategory.GYM}), 1)
        results = self.history.search("movie")
        assert [item.categories for item in results] == [[VenueCategory.MOVIE_THEATER]]

    @pytest.mark.asyncio
    async def test_empty_query_returns_all(self) -> None:
        await self.history.add(params(categories={VenueCategory.CAFE}), 1)
        await self.history.add(params(categories={VenueCategory.BAR}), 1)
        assert len(self.history.search("  ")) == 2

    @pytest.mark.asyncio
    async def test_recent_and_limit(self) -> None:
        for i in range(8):
            await self.history.add(params(lat1=10 + i * 0.01), i)
        assert [item.result_count for item in self.history.get_recent()] == [7, 6, 5, 4, 3]
        assert len(self.history.get_history(limit=2)) == 2

    @pytest.mark.asyncio
    async def test_frequent_locations(self) -> None:
        shared = dict(lat2=40.0, lng2=116.0, address2="Office")
        await self.history.add(params(lat1=39.1, lng1=116.1, address1="Home", **shared), 1)
        await self.history.add(params(lat1=39.2, lng1=116.2, address1="Gym", **shared), 1)
        await self.history.add(params(lat1=39.3, lng1=116.3, address1="Mall", **shared), 1)
        locations = self.history.get_frequent_locations(2)
        assert [loc.address for loc in locations] == ["Office", "Mall"]

    @pytest.mark.asyncio
    async def test_frequent_category_combinations(self) -> None:
        await self.history.add(params(lat1=10.0, categories={VenueCategory.CAFE}), 1)
        await self.history.add(
            params(lat1=11.0, categories={VenueCategory.BAR, VenueCategory.RESTAURANT}), 1
        )
        await self.history.add(
            params(lat1=12.0, categories={VenueCategory.RESTAURANT, VenueCategory.BAR}), 1
        )
        combos = self.history.get_frequent_category_combinations()
        assert combos[0] == [VenueCategory.BAR, VenueCategory.RESTAURANT]
        assert combos[1] == [VenueCategory.CAFE]


class TestSearchHistoryStoreImportExport:
    """Tests for versioned snapshots."""

    @pytest.mark.asyncio
    async def test_export_format(self) -> None:
        history = SearchHistoryStore(InMemoryKeyValueStore())
        await history.add(params(), 3)
        snapshot = json.loads(history.export_history())
        assert snapshot["version"] == "1.0"
        assert "exported_at" in snapshot
        assert len(snapshot["history"]) == 1

    @pytest.mark.asyncio
    async def test_export_then_import(self) -> None:
        source = SearchHistoryStore(InMemoryKeyValueStore())
        await source.add(params(categories={VenueCategory.CAFE}), 1)
        await source.add(params(categories={VenueCategory.PARK}), 2)

        target = SearchHistoryStore(InMemoryKeyValueStore())
        assert await target.import_history(source.export_history()) == 2
        assert [i.id for i in target.get_history()] == [i.id for i in source.get_history()]

    @pytest.mark.asyncio
    async def test_import_deduplicates_and_caps(self) -> None:
        target = SearchHistoryStore(InMemoryKeyValueStore())
        for i in range(15):
            await target.add(params(lat1=10 + i * 0.01), i)

        source = SearchHistoryStore(InMemoryKeyValueStore())
        for i in range(10, 20):
            await source.add(params(lat1=10 + i * 0.01), 100 + i)

        assert await target.import_history(source.export_history()) == 10
        items = target.get_history()
        assert len(items) == 20
        assert items[0].result_count == 119
        # Overlapping searches keep the imported copy only.
        assert sum(1 for item in items if item.location1.latitude == pytest.approx(10.12)) == 1

    @pytest.mark.asyncio
    async def test_import_discards_malformed_items(self) -> None:
        source = SearchHistoryStore(InMemoryKeyValueStore())
        await source.add(params(), 1)
        snapshot = json.loads(source.export_history())
        snapshot["history"].append({"id": "x", "location1": {"latitude": 500}})

        target = SearchHistoryStore(InMemoryKeyValueStore())
        assert await target.import_history(snapshot) == 1
        assert len(target) == 1

    @pytest.mark.asyncio
    async def test_import_rejects_bad_payloads(self) -> None:
        history = SearchHistoryStore(InMemoryKeyValueStore())
        assert await history.import_history("{not json") == 0
        assert await history.import_history({"version": "1.0"}) == 0
        assert await history.import_history({"history": "nope"}) == 0
        assert len(history) == 0


class TestCategoryPreferencesStore:
    """Tests for remembered categories."""

    @pytest.mark.asyncio
    async def test_set_sorts_and_persists(self) -> None:
        storage = InMemoryKeyValueStore()
        prefs = CategoryPreferencesStore(storage)
        result = await prefs.set({VenueCategory.PARK, VenueCategory.CAFE})
        assert result == [VenueCategory.CAFE, VenueCategory.PARK]
        assert await storage.get(PREFERENCES_KEY) == ["cafe", "park"]

    @pytest.mark.asyncio
    async def test_load_skips_unknown_values(self) -> None:
        storage = InMemoryKeyValueStore()
        await storage.set(PREFERENCES_KEY, ["bar", "spaceport"])
        prefs = CategoryPreferencesStore(storage)
        await prefs.load()
        assert prefs.get() == [VenueCategory.BAR]

    @pytest.mark.asyncio
    async def test_storage_failure(self) -> None:
        prefs = CategoryPreferencesStore(BrokenStore())
        await prefs.load()
        assert prefs.get() == []
        assert await prefs.set([VenueCategory.GYM]) == [VenueCategory.GYM]
