"""Search history and preference persistence."""

from .service import (
    HISTORY_KEY,
    PREFERENCES_KEY,
    CategoryPreferencesStore,
    SearchHistoryStore,
)

__all__ = [
    "HISTORY_KEY",
    "PREFERENCES_KEY",
    "CategoryPreferencesStore",
    "SearchHistoryStore",
]
