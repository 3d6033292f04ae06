# lore.py
# Character, planet and timeline lookups plus per-film story briefings

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple
import logging

import orjson

from fuzzy_search import build_aliases, normalize
from media_catalog import Movie

logger = logging.getLogger(__name__)

LORE_FILE = 'lore.json'


def _strings(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(v for v in value if isinstance(v, str))


def _text(record: dict, key: str) -> str:
    value = record.get(key)
    return value if isinstance(value, str) else ''


def _contains(haystack: str, needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


@dataclass(frozen=True)
class CharacterProfile:
    name: str
    aliases: Tuple[str, ...] = ()
    affiliations: Tuple[str, ...] = ()
    homeworld: str = ''
    biography: str = ''
    media: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'aliases': list(self.aliases),
            'affiliations': list(self.affiliations),
            'homeworld': self.homeworld,
            'biography': self.biography,
            'media': list(self.media),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CharacterProfile':
        return cls(
            name=_text(data, 'name'),
            aliases=_strings(data.get('aliases')),
            affiliations=_strings(data.get('affiliations')),
            homeworld=_text(data, 'homeworld'),
            biography=_text(data, 'biography'),
            media=_strings(data.get('media')),
        )


@dataclass(frozen=True)
class PlanetProfile:
    name: str
    region: str = ''
    description: str = ''
    events: Tuple[str, ...] = ()
    media: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'region': self.region,
            'description': self.description,
            'events': list(self.events),
            'media': list(self.media),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlanetProfile':
        return cls(
            name=_text(data, 'name'),
            region=_text(data, 'region'),
            description=_text(data, 'description'),
            events=_strings(data.get('events')),
            media=_strings(data.get('media')),
        )


@dataclass(frozen=True)
class TimelineEvent:
    title: str
    era: str = ''
    # years relative to the Battle of Yavin; negative is before
    year: int = 0
    description: str = ''
    characters: Tuple[str, ...] = ()
    locations: Tuple[str, ...] = ()
    media: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'era': self.era,
            'year': self.year,
            'description': self.description,
            'characters': list(self.characters),
            'locations': list(self.locations),
            'media': list(self.media),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TimelineEvent':
        year = data.get('year', 0)
        return cls(
            title=_text(data, 'title'),
            era=_text(data, 'era'),
            year=int(year) if isinstance(year, (int, float)) and not isinstance(year, bool) else 0,
            description=_text(data, 'description'),
            characters=_strings(data.get('characters')),
            locations=_strings(data.get('locations')),
            media=_strings(data.get('media')),
        )


def _parse(records: Any, factory, key: str) -> list:
    """Build records from a JSON list, skipping non-objects and entries without a name."""
    if not isinstance(records, list):
        return []
    out = []
    for r in records:
        if not isinstance(r, dict):
            continue
        item = factory(r)
        if not getattr(item, key).strip():
            logger.warning("Skipping lore entry without %s: %r", key, r)
            continue
        out.append(item)
    return out


class LoreRepository:
    """Read-only collection of characters, planets and timeline events with substring lookups."""

    def __init__(self, characters=(), planets=(), events=()):
        self.characters: Tuple[CharacterProfile, ...] = tuple(characters)
        self.planets: Tuple[PlanetProfile, ...] = tuple(planets)
        self.events: Tuple[TimelineEvent, ...] = tuple(events)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoreRepository':
        return cls(
            _parse(data.get('characters'), CharacterProfile.from_dict, 'name'),
            _parse(data.get('planets'), PlanetProfile.from_dict, 'name'),
            _parse(data.get('timeline'), TimelineEvent.from_dict, 'title'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'characters': [c.to_dict() for c in self.characters],
            'planets': [p.to_dict() for p in self.planets],
            'timeline': [e.to_dict() for e in self.events],
        }

    @classmethod
    def bundled(cls) -> 'LoreRepository':
        """Small built-in data set used when no lore file is present."""
        return cls(
            characters=[
                CharacterProfile(
                    'Ahsoka Tano', ('Snips', 'Fulcrum'), ('Jedi Order', 'Fulcrum', 'Rebel Alliance'), 'Shili',
                    "Former Padawan of Anakin Skywalker who becomes a key Rebel operative.",
                    ('Star Wars: The Clone Wars', 'Star Wars Rebels', 'The Mandalorian')),
                CharacterProfile(
                    'Luke Skywalker', ('Red Five',), ('Rebel Alliance', 'Jedi Order'), 'Tatooine',
                    "Farmboy turned Jedi who redeems his father and rebuilds the Order.",
                    ('A New Hope', 'The Empire Strikes Back', 'Return of the Jedi', 'The Last Jedi')),
            ],
            planets=[
                PlanetProfile(
                    'Coruscant', 'Core Worlds',
                    "Ecumenopolis capital of the Republic and later the Galactic Empire.",
                    ('Battle of Coruscant', 'Order 66'),
                    ('Attack of the Clones', 'Revenge of the Sith', 'The Clone Wars')),
                PlanetProfile(
                    'Mandalore', 'Outer Rim',
                    "War-torn homeworld of the Mandalorians, defined by clan politics.",
                    ('Siege of Mandalore', 'Purge of Mandalore'),
                    ('The Clone Wars', 'The Mandalorian', 'The Book of Boba Fett')),
            ],
            events=[
                TimelineEvent(
                    'Siege of Mandalore', 'Clone Wars', -19,
                    "Ahsoka Tano and Clone Captain Rex lead a campaign to liberate Mandalore from Maul.",
                    ('Ahsoka Tano', 'Maul', 'Rex'), ('Mandalore',), ('Star Wars: The Clone Wars',)),
                TimelineEvent(
                    'Battle of Endor', 'Galactic Civil War', 4,
                    "Rebel Alliance destroys the second Death Star and topples Palpatine's rule.",
                    ('Luke Skywalker', 'Leia Organa', 'Han Solo'), ('Endor',), ('Return of the Jedi',)),
            ],
        )

    def find_characters(self, query: str) -> List[CharacterProfile]:
        """Characters whose name or any alias contains ``query`` (case-insensitive)."""
        if not query or not query.strip():
            return []
        needle = query.strip().lower()
        return [c for c in self.characters
                if _contains(c.name, needle) or any(_contains(a, needle) for a in c.aliases)]

    def find_planets(self, query: str) -> List[PlanetProfile]:
        if not query or not query.strip():
            return []
        needle = query.strip().lower()
        return [p for p in self.planets
                if _contains(p.name, needle) or _contains(p.description, needle)
                or any(_contains(e, needle) for e in p.events)]

    def events_featuring_character(self, name: str) -> List[TimelineEvent]:
        if not name or not name.strip():
            return []
        needle = name.strip().lower()
        return [e for e in self.events if any(_contains(c, needle) for c in e.characters)]

    def events_at_location(self, location: str) -> List[TimelineEvent]:
        if not location or not location.strip():
            return []
        needle = location.strip().lower()
        return [e for e in self.events if any(_contains(place, needle) for place in e.locations)]


def load_lore(path: str) -> LoreRepository:
    """
    Load lore from a JSON file with ``characters``, ``planets`` and ``timeline`` arrays.

    Falls back to the bundled lore when the file is missing or cannot be decoded.

    Raises:
        ValueError: if the file holds valid JSON that is not an object.
    """
    p = Path(path)
    if not p.exists():
        logger.info("Lore file %s not found; using bundled lore.", path)
        return LoreRepository.bundled()
    try:
        data = orjson.loads(p.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        logger.exception("Failed to load lore from %s: %s", path, e)
        return LoreRepository.bundled()
    if not isinstance(data, dict):
        raise ValueError("Lore file must be a JSON object")
    return LoreRepository.from_dict(data)


# ---------- Story briefings ----------
@dataclass(frozen=True)
class StoryBriefing:
    title: str
    paragraphs: Tuple[str, ...] = field(default_factory=tuple)


def _features(media: Tuple[str, ...], aliases: Tuple[str, ...]) -> bool:
    # lore refers to films by short names ("A New Hope"), so compare against every alias
    return any(normalize(m) in aliases for m in media)


def build_story_briefing(movie: Movie, lore: LoreRepository) -> StoryBriefing:
    """Narrative summary of a film: setting and synopsis, key characters, timeline beats and trivia."""
    aliases = build_aliases(movie)

    intro = (f"Set during the {movie.era or 'unknown era'}, this adventure premieres in "
             f"{movie.release_year} and belongs to the {movie.category.display_name}.")
    if movie.synopsis and movie.synopsis.strip():
        intro += f" {movie.synopsis}"
    if movie.streaming and movie.streaming.strip():
        intro += f" Stream it via {movie.streaming}."
    paragraphs = [intro]

    featured = [c for c in lore.characters if _features(c.media, aliases)]
    if featured:
        names = [f"{c.name} (a.k.a. {', '.join(c.aliases)})" if c.aliases else c.name for c in featured]
        paragraphs.append("Key characters: " + ", ".join(names) + ".")

    beats = [e for e in lore.events if _features(e.media, aliases)]
    if beats:
        paragraphs.append("Timeline beats connected to this story: "
                          + "; ".join(f"{e.title} ({e.era})" for e in beats) + ".")

    if movie.notes and movie.notes.strip():
        paragraphs.append(f"Trivia transmission: {movie.notes}")
    return StoryBriefing(f"Story Briefing: {movie.title}", tuple(paragraphs))
