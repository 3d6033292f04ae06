# media_catalog.py
# Catalog model for films and series: records, JSON loading, queries and app config

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging

import orjson

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = 'catalog-config.json'
DEFAULT_SEARCH_LIMIT = 5


class MovieCategory(Enum):
    SAGA = "Skywalker Saga"
    ANTHOLOGY = "Standalone Anthology Films"
    ANIMATED_FEATURE = "Animated Features"
    TV_FILM = "Television Films and Specials"
    LEGO_SPECIAL = "LEGO and Animated Specials"

    @property
    def display_name(self) -> str:
        return self.value


class SeriesFormat(Enum):
    LIVE_ACTION = "Live Action Series"
    ANIMATED = "Animated Series"
    MICRO_SERIES = "Animated Micro Series"
    LEGO = "LEGO Animated Series"
    ANTHOLOGY = "Anthology Series"
    DOCUMENTARY = "Documentary Series"

    @property
    def display_name(self) -> str:
        return self.value


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


@dataclass(frozen=True)
class Movie:
    title: str
    release_year: int
    category: MovieCategory
    episode_number: Optional[int] = None
    episode_roman: Optional[str] = None
    era: Optional[str] = None
    synopsis: Optional[str] = None
    streaming: Optional[str] = None
    notes: Optional[str] = None

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title, era, synopsis and notes."""
        q = query.lower()
        return any(_contains(v, q) for v in (self.title, self.era, self.synopsis, self.notes))


@dataclass(frozen=True)
class Series:
    title: str
    start_year: int
    format: SeriesFormat
    end_year: Optional[int] = None
    era: Optional[str] = None
    synopsis: Optional[str] = None
    streaming: Optional[str] = None
    notes: Optional[str] = None

    @property
    def category(self) -> SeriesFormat:
        # lets series go through the same search ranking as films
        return self.format

    def matches(self, query: str) -> bool:
        q = query.lower()
        return any(_contains(v, q) for v in (self.title, self.era, self.synopsis, self.notes))

    def describe(self) -> str:
        end = f"-{self.end_year}" if self.end_year is not None else "-present"
        out = f"{self.title} ({self.start_year}{end}) [{self.format.display_name}]"
        if self.era and self.era.strip():
            out += f" | Era: {self.era}"
        if self.streaming and self.streaming.strip():
            out += f" | Watch: {self.streaming}"
        if self.synopsis and self.synopsis.strip():
            out += f"\n    {self.synopsis}"
        if self.notes and self.notes.strip():
            out += f"\n    Notes: {self.notes}"
        return out


def format_movie(m: Movie) -> str:
    """One-line headline for a film, e.g. 'Episode V - Title (1980) | Category: ...'."""
    head = ''
    if m.episode_number is not None:
        head = f"Episode {m.episode_roman or m.episode_number} - "
    out = f"{head}{m.title} ({m.release_year}) | Category: {m.category.display_name}"
    if m.era:
        out += f" | Era: {m.era}"
    if m.streaming:
        out += f" | Watch: {m.streaming}"
    return out


class MediaCatalog:
    """Immutable snapshot of the loaded films and series with simple query helpers."""

    def __init__(self, movies: Optional[List[Movie]] = None, series: Optional[List[Series]] = None):
        self.movies: Tuple[Movie, ...] = tuple(movies or ())
        self.series: Tuple[Series, ...] = tuple(series or ())

    def by_category(self, category: MovieCategory) -> List[Movie]:
        return sorted((m for m in self.movies if m.category == category), key=lambda m: m.release_year)

    def by_era(self, era: str) -> List[Movie]:
        return sorted((m for m in self.movies if m.era == era), key=lambda m: m.release_year)

    def search_movies(self, query: Optional[str]) -> List[Movie]:
        if not query or not query.strip():
            return []
        return sorted((m for m in self.movies if m.matches(query)), key=lambda m: m.release_year)

    def by_format(self, fmt: SeriesFormat) -> List[Series]:
        return sorted((s for s in self.series if s.format == fmt), key=lambda s: s.start_year)

    def by_series_era(self, era: str) -> List[Series]:
        return sorted((s for s in self.series if s.era == era), key=lambda s: s.start_year)

    def search_series(self, query: Optional[str]) -> List[Series]:
        if not query or not query.strip():
            return []
        return sorted((s for s in self.series if s.matches(query)), key=lambda s: s.start_year)

    def sorted_movies(self) -> List[Movie]:
        return sorted(self.movies, key=lambda m: m.release_year)

    def sorted_series(self) -> List[Series]:
        return sorted(self.series, key=lambda s: s.start_year)

    def movies_grouped_by_category(self) -> Dict[MovieCategory, List[Movie]]:
        """Films per category, categories in declaration order, empty ones left out."""
        grouped = {c: self.by_category(c) for c in MovieCategory}
        return {c: films for c, films in grouped.items() if films}

    def series_grouped_by_format(self) -> Dict[SeriesFormat, List[Series]]:
        grouped = {f: self.by_format(f) for f in SeriesFormat}
        return {f: shows for f, shows in grouped.items() if shows}

    def movie_eras(self) -> List[str]:
        return sorted({m.era for m in self.movies if m.era and m.era.strip()})

    def series_eras(self) -> List[str]:
        return sorted({s.era for s in self.series if s.era and s.era.strip()})

    def find_movie(self, title: str) -> Optional[Movie]:
        key = title.strip().lower()
        return next((m for m in self.movies if m.title.lower() == key), None)

    def find_series(self, title: str) -> Optional[Series]:
        key = title.strip().lower()
        return next((s for s in self.series if s.title.lower() == key), None)


# ---------- Validation and loading helpers ----------
def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _optional_str(record: dict, key: str) -> bool:
    return record.get(key) is None or isinstance(record.get(key), str)


def validate_movie_record(record: dict) -> bool:
    """Quick schema validation for raw movie dicts."""
    if not isinstance(record, dict):
        return False
    title = record.get('title')
    if not isinstance(title, str) or not title.strip():
        return False
    if not _is_int(record.get('releaseYear')):
        return False
    if not isinstance(record.get('category'), str) or record['category'] not in MovieCategory.__members__:
        return False
    if record.get('episodeNumber') is not None and not _is_int(record.get('episodeNumber')):
        return False
    return all(_optional_str(record, k) for k in ('episodeRoman', 'era', 'synopsis', 'streaming', 'notes'))


def validate_series_record(record: dict) -> bool:
    """Quick schema validation for raw series dicts."""
    if not isinstance(record, dict):
        return False
    title = record.get('title')
    if not isinstance(title, str) or not title.strip():
        return False
    if not _is_int(record.get('startYear')):
        return False
    if record.get('endYear') is not None and not _is_int(record.get('endYear')):
        return False
    if not isinstance(record.get('format'), str) or record['format'] not in SeriesFormat.__members__:
        return False
    return all(_optional_str(record, k) for k in ('era', 'synopsis', 'streaming', 'notes'))


def movie_from_dict(record: dict) -> Movie:
    return Movie(
        title=record['title'],
        release_year=record['releaseYear'],
        category=MovieCategory[record['category']],
        episode_number=record.get('episodeNumber'),
        episode_roman=record.get('episodeRoman'),
        era=record.get('era'),
        synopsis=record.get('synopsis'),
        streaming=record.get('streaming'),
        notes=record.get('notes'),
    )


def series_from_dict(record: dict) -> Series:
    return Series(
        title=record['title'],
        start_year=record['startYear'],
        end_year=record.get('endYear'),
        format=SeriesFormat[record['format']],
        era=record.get('era'),
        synopsis=record.get('synopsis'),
        streaming=record.get('streaming'),
        notes=record.get('notes'),
    )


def _read_records(path: str, key: str) -> List[Any]:
    """Return the list stored under ``key`` in a JSON object file, or [] when unusable."""
    p = Path(path)
    if not p.exists():
        logger.info("Catalog file %s not found. Returning empty list.", path)
        return []
    try:
        data = orjson.loads(p.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        logger.exception("Failed to read catalog file %s: %s", path, e)
        return []
    if not isinstance(data, dict) or not isinstance(data.get(key), list):
        logger.warning("Unexpected format in %s: expected an object with a '%s' array.", path, key)
        return []
    return data[key]


def load_movies(path: str) -> List[Movie]:
    """Load films from a JSON file shaped like {"movies": [...]}. Invalid entries are skipped."""
    raw = _read_records(path, 'movies')
    valid = [movie_from_dict(r) for r in raw if validate_movie_record(r)]
    if len(valid) < len(raw):
        logger.warning("%d entries in %s failed validation and were skipped.", len(raw) - len(valid), path)
    return valid


def load_series(path: str) -> List[Series]:
    """Load series from a JSON file shaped like {"series": [...]}. Invalid entries are skipped."""
    raw = _read_records(path, 'series')
    valid = [series_from_dict(r) for r in raw if validate_series_record(r)]
    if len(valid) < len(raw):
        logger.warning("%d entries in %s failed validation and were skipped.", len(raw) - len(valid), path)
    return valid


def load_catalog(movies_path: str, series_path: str) -> MediaCatalog:
    catalog = MediaCatalog(load_movies(movies_path), load_series(series_path))
    logger.info("Loaded %d films and %d series", len(catalog.movies), len(catalog.series))
    return catalog


# ---------- Application configuration ----------
class ConfigError(ValueError):
    """Raised when the configuration file is not usable."""


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path
    movies_file: Path
    series_file: Path
    preferences_file: Path
    watchlist_file: Path
    search_limit: int = DEFAULT_SEARCH_LIMIT

    def with_data_dir(self, data_dir: Path) -> 'AppConfig':
        """Copy of this config with the catalog files re-rooted under ``data_dir``."""
        data_dir = Path(data_dir)
        return replace(
            self,
            data_dir=data_dir,
            movies_file=data_dir / self.movies_file.name,
            series_file=data_dir / self.series_file.name,
        )


def _config_str(data: dict, key: str, default: str) -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigError(f"App config field '{key}' must be a string")
    return value


def config_from_dict(data: dict, base_path: Path) -> AppConfig:
    data_dir = base_path / _config_str(data, 'dataDir', 'data')
    limit = data.get('searchLimit', DEFAULT_SEARCH_LIMIT)
    if not _is_int(limit):
        raise ConfigError("App config field 'searchLimit' must be an integer")
    return AppConfig(
        data_dir=data_dir,
        movies_file=data_dir / _config_str(data, 'moviesFile', 'movies.json'),
        series_file=data_dir / _config_str(data, 'seriesFile', 'series.json'),
        preferences_file=base_path / _config_str(data, 'preferencesFile', 'user-preferences.json'),
        watchlist_file=base_path / _config_str(data, 'watchlistFile', 'watchlist-history.json'),
        search_limit=limit,
    )


def load_config(path: str = DEFAULT_CONFIG_FILE) -> AppConfig:
    """
    Load the application config; a missing file yields the defaults.

    Paths in the file are resolved relative to the directory holding it.

    Raises:
        ConfigError: if the file is not a JSON object or a field has the wrong type.
    """
    p = Path(path)
    base = p.parent
    if not p.exists():
        logger.info("Config file %s not found; using defaults.", path)
        return config_from_dict({}, base)
    try:
        data = orjson.loads(p.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        raise ConfigError(f"Config file {path} could not be read: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("Config file must be a JSON object")
    return config_from_dict(data, base)
