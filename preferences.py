# preferences.py
# Favourites, recent searches and display flags, persisted as JSON

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import os

import orjson

logger = logging.getLogger(__name__)

MAX_RECENT_SEARCHES = 10

# Tracks the last save error message (if any) to help debugging failed saves
last_save_error: Optional[str] = None


def get_last_save_error() -> Optional[str]:
    """Return the last error message recorded when saving preferences (or None)."""
    return last_save_error


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


@dataclass
class UserPreferences:
    favorite_movies: List[str] = field(default_factory=list)
    favorite_series: List[str] = field(default_factory=list)
    acknowledged_achievements: List[str] = field(default_factory=list)
    colorized_output: bool = False
    emoji_output: bool = False
    last_movie_filter: Optional[str] = None
    last_series_filter: Optional[str] = None
    # most recent first
    recent_searches: List[str] = field(default_factory=list)

    def add_favorite_movie(self, title: str) -> None:
        if title not in self.favorite_movies:
            self.favorite_movies.append(title)

    def remove_favorite_movie(self, title: str) -> None:
        if title in self.favorite_movies:
            self.favorite_movies.remove(title)

    def toggle_favorite_movie(self, title: str) -> bool:
        """Flip the favourite flag for a film; returns True when it is now a favourite."""
        if title in self.favorite_movies:
            self.remove_favorite_movie(title)
            return False
        self.add_favorite_movie(title)
        return True

    def add_favorite_series(self, title: str) -> None:
        if title not in self.favorite_series:
            self.favorite_series.append(title)

    def remove_favorite_series(self, title: str) -> None:
        if title in self.favorite_series:
            self.favorite_series.remove(title)

    def toggle_favorite_series(self, title: str) -> bool:
        if title in self.favorite_series:
            self.remove_favorite_series(title)
            return False
        self.add_favorite_series(title)
        return True

    def add_recent_search(self, term: Optional[str]) -> None:
        """Move ``term`` to the front of the recent list, dropping the oldest beyond the cap."""
        if term is None or not term.strip():
            return
        if term in self.recent_searches:
            self.recent_searches.remove(term)
        self.recent_searches.insert(0, term)
        del self.recent_searches[MAX_RECENT_SEARCHES:]

    def acknowledge_achievement(self, achievement_id: Optional[str]) -> None:
        if achievement_id and achievement_id not in self.acknowledged_achievements:
            self.acknowledged_achievements.append(achievement_id)

    def clear_acknowledged_achievements(self) -> None:
        self.acknowledged_achievements.clear()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'favoriteMovies': list(self.favorite_movies),
            'favoriteSeries': list(self.favorite_series),
            'lastMovieFilter': self.last_movie_filter,
            'lastSeriesFilter': self.last_series_filter,
            'recentSearches': list(self.recent_searches),
            'colorizedOutput': self.colorized_output,
            'emojiOutput': self.emoji_output,
            'acknowledgedAchievements': list(self.acknowledged_achievements),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserPreferences':
        """Rebuild preferences from stored JSON, ignoring values of the wrong type."""
        prefs = cls()
        for title in _string_list(data.get('favoriteMovies')):
            prefs.add_favorite_movie(title)
        for title in _string_list(data.get('favoriteSeries')):
            prefs.add_favorite_series(title)
        for achievement_id in _string_list(data.get('acknowledgedAchievements')):
            prefs.acknowledge_achievement(achievement_id)
        if isinstance(data.get('lastMovieFilter'), str):
            prefs.last_movie_filter = data['lastMovieFilter']
        if isinstance(data.get('lastSeriesFilter'), str):
            prefs.last_series_filter = data['lastSeriesFilter']
        if isinstance(data.get('colorizedOutput'), bool):
            prefs.colorized_output = data['colorizedOutput']
        if isinstance(data.get('emojiOutput'), bool):
            prefs.emoji_output = data['emojiOutput']
        # stored newest first; replay oldest first to keep that order
        for term in reversed(_string_list(data.get('recentSearches'))):
            prefs.add_recent_search(term)
        return prefs


def load_preferences(path: str) -> UserPreferences:
    """
    Load preferences from a JSON file.

    Args:
        path: Path to the preferences JSON file.

    Returns:
        The stored preferences, or fresh defaults when the file is missing
        or cannot be decoded.

    Raises:
        ValueError: if the file holds valid JSON that is not an object.
    """
    p = Path(path)
    if not p.exists():
        return UserPreferences()
    try:
        data = orjson.loads(p.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        logger.exception("Failed to load preferences from %s: %s", path, e)
        return UserPreferences()
    if not isinstance(data, dict):
        raise ValueError("Preferences file must be a JSON object")
    return UserPreferences.from_dict(data)


def write_json_atomic(path: str, payload: Any) -> None:
    """Write JSON to a temporary sibling file then swap it in, so readers never see partial files."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_name(p.name + '.tmp')
    with open(tmp, 'wb') as f:
        f.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
    os.replace(str(tmp), str(p))


def save_preferences(path: str, prefs: UserPreferences) -> bool:
    """
    Save preferences to a JSON file.

    Returns:
        bool: True if save was successful, False otherwise.
    """
    global last_save_error
    try:
        write_json_atomic(path, prefs.to_dict())
        last_save_error = None
        return True
    except (OSError, TypeError) as e:
        error_msg = f"Failed to save preferences to {path}: {str(e)}"
        logger.exception(error_msg)
        last_save_error = error_msg
        return False
