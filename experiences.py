# experiences.py
# Curated film lineups: random missions, release-order marathons and double features

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import logging
import random

from media_catalog import MediaCatalog, Movie, MovieCategory

logger = logging.getLogger(__name__)

DEFAULT_MISSION_SIZE = 3
DEFAULT_MARATHON_SIZE = 6

# Rarer formats get picked more often so missions don't collapse into saga films
CATEGORY_WEIGHT: Dict[MovieCategory, float] = {
    MovieCategory.SAGA: 0.9,
    MovieCategory.ANTHOLOGY: 1.1,
    MovieCategory.ANIMATED_FEATURE: 1.2,
    MovieCategory.TV_FILM: 1.3,
    MovieCategory.LEGO_SPECIAL: 1.4,
}

# Rough runtimes in minutes; shorter films weigh more
ESTIMATED_RUNTIME: Dict[MovieCategory, int] = {
    MovieCategory.SAGA: 135,
    MovieCategory.ANTHOLOGY: 125,
    MovieCategory.ANIMATED_FEATURE: 98,
    MovieCategory.TV_FILM: 90,
    MovieCategory.LEGO_SPECIAL: 45,
}


@dataclass(frozen=True)
class Experience:
    title: str
    description: str
    movies: Tuple[Movie, ...] = field(default_factory=tuple)


def mission_weight(movie: Movie) -> float:
    return CATEGORY_WEIGHT.get(movie.category, 1.0) * 180.0 / ESTIMATED_RUNTIME.get(movie.category, 120)


class CuratedExperienceService:
    """
    Builds themed lineups from the films in a catalog.

    Pass a seeded ``random.Random`` for reproducible missions.
    """

    def __init__(self, catalog: MediaCatalog, rng: Optional[random.Random] = None):
        self.catalog = catalog
        self.rng = rng if rng is not None else random.Random()

    def build_random_mission(self, count: int = DEFAULT_MISSION_SIZE) -> Experience:
        """Weighted draw of ``count`` distinct films."""
        pool: List[Movie] = list(self.catalog.movies)
        picks: List[Movie] = []
        while pool and len(picks) < count:
            total = sum(mission_weight(m) for m in pool)
            roll = self.rng.random() * total
            cursor = 0.0
            chosen = pool[-1]
            for movie in pool:
                cursor += mission_weight(movie)
                if cursor >= roll:
                    chosen = movie
                    break
            picks.append(chosen)
            pool.remove(chosen)
        logger.debug("Random mission picked %d of %d films", len(picks), len(self.catalog.movies))
        return Experience("Random Mission",
                          "A surprise lineup pulling from every corner of the galaxy.",
                          tuple(picks))

    def build_chronological_marathon(self, limit: int = DEFAULT_MARATHON_SIZE) -> Experience:
        ordered = self.catalog.sorted_movies()
        if limit > 0:
            ordered = ordered[:limit]
        return Experience("Chronological Marathon",
                          f"Chronological marathon featuring {len(ordered)} key holos",
                          tuple(ordered))

    def build_double_feature(self) -> Experience:
        """Two films from the first era holding at least two; otherwise the two oldest films."""
        movies = self.catalog.sorted_movies()
        if len(movies) < 2:
            return Experience("Double Feature", "Not enough films to build a pairing.", tuple(movies))
        by_era: Dict[str, List[Movie]] = {}
        # eras are visited in catalog order
        for m in self.catalog.movies:
            if m.era:
                by_era.setdefault(m.era, []).append(m)
        for era, films in by_era.items():
            if len(films) >= 2:
                pair = sorted(films, key=lambda m: m.release_year)[:2]
                return Experience("Tonight's Double Feature", f"Stories set during the {era}", tuple(pair))
        return Experience("Tonight's Double Feature", "Back-to-back classics from the archives",
                          tuple(movies[:2]))
