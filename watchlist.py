# watchlist.py
# Watch status, viewing history and achievement progress

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set
import logging
import threading

import orjson

from media_catalog import MediaCatalog, MovieCategory
from preferences import write_json_atomic

logger = logging.getLogger(__name__)

WATCHLIST_FILE = 'watchlist-history.json'


class MediaType(Enum):
    MOVIE = "MOVIE"
    SERIES = "SERIES"


class WatchStatus(Enum):
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


def _check_rating(rating: int) -> None:
    if not 0 <= rating <= 5:
        raise ValueError("rating must be between 0 and 5")


@dataclass(frozen=True)
class WatchlistEntry:
    title: str
    type: MediaType
    status: WatchStatus
    rating: int = 0
    times_watched: int = 0
    last_watched: Optional[date] = None

    def __post_init__(self):
        if not isinstance(self.title, str) or not self.title.strip():
            raise ValueError("title must be a non-empty string")
        _check_rating(self.rating)
        if self.times_watched < 0:
            raise ValueError("times_watched cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'type': self.type.value,
            'status': self.status.value,
            'rating': self.rating,
            'timesWatched': self.times_watched,
            'lastWatched': self.last_watched.isoformat() if self.last_watched else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WatchlistEntry':
        last = data.get('lastWatched')
        return cls(
            title=data.get('title', ''),
            type=MediaType(str(data.get('type', 'MOVIE')).upper()),
            status=WatchStatus(str(data.get('status', 'PLANNED')).upper()),
            rating=int(data.get('rating', 0)),
            times_watched=int(data.get('timesWatched', 0)),
            last_watched=date.fromisoformat(last) if isinstance(last, str) and last.strip() else None,
        )


@dataclass(frozen=True)
class WatchEvent:
    title: str
    type: MediaType
    watched_at: datetime
    rating: int = 0
    notes: str = ''

    def __post_init__(self):
        _check_rating(self.rating)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'type': self.type.value,
            'watchedAt': self.watched_at.isoformat(timespec='seconds'),
            'rating': self.rating,
            'notes': self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WatchEvent':
        return cls(
            title=data.get('title', ''),
            type=MediaType(str(data.get('type', 'MOVIE')).upper()),
            watched_at=datetime.fromisoformat(data['watchedAt']),
            rating=int(data.get('rating', 0)),
            notes=data.get('notes') or '',
        )


def _key(title: str) -> str:
    return title.strip().lower()


class WatchlistManager:
    """Keeps watchlist entries keyed by title plus an append-only viewing history."""

    def __init__(self, path: str = WATCHLIST_FILE):
        self.path = Path(path)
        self.last_error: Optional[str] = None
        self._entries: Dict[str, WatchlistEntry] = {}
        self._history: List[WatchEvent] = []
        self._lock = threading.RLock()

    def load(self) -> None:
        """Replace in-memory state with the file contents. Missing or malformed files leave it empty."""
        with self._lock:
            self._entries.clear()
            self._history.clear()
            if not self.path.exists():
                return
            try:
                data = orjson.loads(self.path.read_bytes())
            except (OSError, orjson.JSONDecodeError) as e:
                logger.exception("Failed to load watchlist from %s: %s", self.path, e)
                return
            if not isinstance(data, dict):
                logger.warning("Invalid watchlist format in %s: expected object, got %s",
                               self.path, type(data).__name__)
                return
            for item in data.get('watchlist') or []:
                try:
                    entry = WatchlistEntry.from_dict(item)
                except (AttributeError, KeyError, TypeError, ValueError):
                    logger.warning("Skipping invalid watchlist entry: %r", item)
                    continue
                self._entries[_key(entry.title)] = entry
            for item in data.get('history') or []:
                try:
                    self._history.append(WatchEvent.from_dict(item))
                except (AttributeError, KeyError, TypeError, ValueError):
                    logger.warning("Skipping invalid history entry: %r", item)

    def save(self) -> bool:
        """Persist entries and history. Returns True on success; failures are kept in ``last_error``."""
        with self._lock:
            payload = {
                'watchlist': [e.to_dict() for e in self._entries.values()],
                'history': [h.to_dict() for h in self._history],
            }
            try:
                write_json_atomic(str(self.path), payload)
            except OSError as e:
                self.last_error = f"Failed to save watchlist to {self.path}: {e}"
                logger.exception(self.last_error)
                return False
            self.last_error = None
            return True

    def entries(self) -> List[WatchlistEntry]:
        with self._lock:
            return list(self._entries.values())

    def history(self) -> List[WatchEvent]:
        with self._lock:
            return list(self._history)

    def get(self, title: str) -> Optional[WatchlistEntry]:
        with self._lock:
            return self._entries.get(_key(title))

    def upsert(self, title: str, media_type: MediaType, status: WatchStatus) -> WatchlistEntry:
        """Set the status for a title, keeping any rating and watch count already recorded."""
        with self._lock:
            existing = self._entries.get(_key(title))
            if existing is None:
                updated = WatchlistEntry(title, media_type, status)
            else:
                updated = replace(existing, title=title, type=media_type, status=status)
            self._entries[_key(title)] = updated
            return updated

    def mark_completed(self, title: str, media_type: MediaType, rating: int = -1, notes: str = '') -> WatchlistEntry:
        """
        Record a viewing of ``title``.

        Bumps the watch count, stamps today's date, appends a history event
        and saves. A negative ``rating`` keeps the previous rating.

        The viewing is kept in memory even when the save fails; callers check
        ``last_error`` (None after a successful save).
        """
        with self._lock:
            existing = self._entries.get(_key(title))
            if rating < 0:
                rating = existing.rating if existing else 0
            updated = WatchlistEntry(
                title=title,
                type=media_type,
                status=WatchStatus.COMPLETED,
                rating=rating,
                times_watched=(existing.times_watched if existing else 0) + 1,
                last_watched=date.today(),
            )
            # history is stored with second precision
            watched_at = datetime.now().replace(microsecond=0)
            self._history.append(WatchEvent(title, media_type, watched_at, rating, notes))
            self._entries[_key(title)] = updated
            self.save()
            return updated

    def remove(self, title: str) -> bool:
        with self._lock:
            if self._entries.pop(_key(title), None) is None:
                return False
            return self.save()

    def completed_titles(self) -> Set[str]:
        with self._lock:
            return {e.title for e in self._entries.values() if e.status == WatchStatus.COMPLETED}


# ---------- Achievements ----------
class Achievement(Enum):
    SAGA_COMPLETE = "Watch every film in the Skywalker Saga"
    ANTHOLOGY_EXPLORER = "Complete all anthology adventures"
    LEGO_MASTER_BUILDER = "Finish every LEGO special"
    CLONE_WARS_COMPLETIONIST = "Experience the entire Clone Wars saga"

    @property
    def description(self) -> str:
        return self.value


_CATEGORY_ACHIEVEMENTS = {
    Achievement.SAGA_COMPLETE: MovieCategory.SAGA,
    Achievement.ANTHOLOGY_EXPLORER: MovieCategory.ANTHOLOGY,
    Achievement.LEGO_MASTER_BUILDER: MovieCategory.LEGO_SPECIAL,
}


def _ratio(completed: int, total: int) -> float:
    if total == 0:
        return 0.0
    return min(1.0, completed / total)


class AchievementTracker:
    def __init__(self, catalog: MediaCatalog):
        self.catalog = catalog

    def progress(self, completed_titles: Iterable[str]) -> Dict[Achievement, float]:
        """Completion ratio (0.0 to 1.0) for every achievement given the titles watched so far."""
        done = {t.strip().lower() for t in completed_titles}
        progress = {}
        for achievement, category in _CATEGORY_ACHIEVEMENTS.items():
            titles = [m.title.lower() for m in self.catalog.movies if m.category == category]
            progress[achievement] = _ratio(sum(1 for t in titles if t in done), len(titles))
        progress[Achievement.CLONE_WARS_COMPLETIONIST] = self._clone_wars_ratio(done)
        return progress

    def _clone_wars_ratio(self, done: Set[str]) -> float:
        titles = [m.title for m in self.catalog.movies] + [s.title for s in self.catalog.series]
        total = sum(1 for t in titles if 'clone wars' in t.lower())
        completed = sum(1 for t in done if 'clone wars' in t)
        return _ratio(completed, total)

    def unlocked(self, completed_titles: Iterable[str]) -> List[Achievement]:
        return [a for a, value in self.progress(completed_titles).items() if value >= 1.0 - 1e-9]

    def percentages(self, completed_titles: Iterable[str]) -> Dict[Achievement, int]:
        return {a: round(value * 100) for a, value in self.progress(completed_titles).items()}
