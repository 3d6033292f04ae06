# catalog_browser.py
# Command line front-end: catalog listings, fuzzy search, favourites, watchlist, lineups and lore

from typing import Any, List, Optional
import argparse
import logging
import random
import sys

import orjson

from experiences import DEFAULT_MARATHON_SIZE, DEFAULT_MISSION_SIZE, CuratedExperienceService, Experience
from fuzzy_search import SearchResult, search_entries, suggest_titles
from media_catalog import (
    DEFAULT_CONFIG_FILE, ConfigError, MediaCatalog, MovieCategory, Series,
    format_movie, load_catalog, load_config,
)
from lore import LORE_FILE, LoreRepository, TimelineEvent, build_story_briefing, load_lore
from preferences import get_last_save_error, load_preferences, save_preferences
from watchlist import AchievementTracker, MediaType, WatchStatus, WatchlistManager

# Initialize logger at module level
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _parse_args(argv=None):
    p = argparse.ArgumentParser(description="Saga catalog browser: search films and series, track favourites and viewing")
    p.add_argument('--config', type=str, default=DEFAULT_CONFIG_FILE, help='JSON config file (default: catalog-config.json)')
    p.add_argument('--data-dir', type=str, default=None, help='Directory holding movies.json and series.json (overrides config)')

    # Search
    p.add_argument('--query', type=str, default=None, help='Fuzzy search for a title, episode, era or synopsis')
    p.add_argument('--keyword', type=str, default=None, help='Plain substring search; falls back to fuzzy suggestions')
    p.add_argument('--suggest', type=str, default=None, help='Print "did you mean" titles for a query')
    p.add_argument('--series', action='store_true', help='Search series instead of films')
    p.add_argument('--limit', type=int, default=None, help='Maximum number of results (0 for no limit)')
    p.add_argument('--format', choices=['text', 'json'], default='text', help='Output format for search results')

    # Listings
    p.add_argument('--list-categories', action='store_true', help='List film categories with counts and exit')
    p.add_argument('--list-eras', action='store_true', help='List film and series eras and exit')
    p.add_argument('--category', type=str, default=None, help='List the films of one category (e.g. SAGA)')

    # Favourites and watchlist
    p.add_argument('--favorite', type=str, default=None, help='Toggle a film (or series with --series) as favourite')
    p.add_argument('--favorites', action='store_true', help='Show favourite films and series')
    p.add_argument('--plan', type=str, default=None, help='Add a title to the watchlist as planned')
    p.add_argument('--watched', type=str, default=None, help='Record that a title was watched')
    p.add_argument('--rating', type=int, default=-1, help='Rating 0-5 used with --watched')
    p.add_argument('--watchlist', action='store_true', help='Show watchlist entries')
    p.add_argument('--achievements', action='store_true', help='Show achievement progress')
    p.add_argument('--recent', action='store_true', help='Show recent searches')

    # Curated lineups
    p.add_argument('--mission', type=int, nargs='?', const=DEFAULT_MISSION_SIZE, default=None,
                   help='Random weighted lineup of N films (default 3)')
    p.add_argument('--marathon', type=int, nargs='?', const=DEFAULT_MARATHON_SIZE, default=None,
                   help='First N films in release order (default 6)')
    p.add_argument('--double-feature', action='store_true', help="Suggest tonight's double feature")
    p.add_argument('--seed', type=int, default=None, help='Random seed for --mission')
    p.add_argument('--queue', action='store_true', help='Add the suggested lineup to the watchlist')

    # Lore
    p.add_argument('--character', type=str, default=None, help='Look up a character by name or alias')
    p.add_argument('--planet', type=str, default=None, help='Look up a planet')
    p.add_argument('--events-with', type=str, default=None, help='Timeline events featuring a character')
    p.add_argument('--events-at', type=str, default=None, help='Timeline events at a location')
    p.add_argument('--briefing', type=str, default=None, help='Story briefing for a film')

    p.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    return p.parse_args(argv)


def _title_year(value: Any) -> str:
    if isinstance(value, Series):
        return f"{value.title} ({value.start_year})"
    return f"{value.title} ({value.release_year})"


def _result_dict(result: SearchResult) -> dict:
    return {
        'title': result.value.title,
        'score': round(result.score, 4),
        'matchedField': result.matched_field,
    }


def _print_results(results: List[SearchResult], fmt: str) -> None:
    if fmt == 'json':
        print(orjson.dumps([_result_dict(r) for r in results], option=orjson.OPT_INDENT_2).decode())
        return
    if not results:
        print("No matching results found.")
        return
    print(f"Found {len(results)} match(es):")
    for i, r in enumerate(results, start=1):
        print(f" {i}) {_title_year(r.value)}  [score {r.score:.2f}, matched '{r.matched_field}']")


def _resolve(catalog: MediaCatalog, title: str, series: bool):
    """Exact (case-insensitive) lookup; prints suggestions to stderr when nothing matches."""
    found = catalog.find_series(title) if series else catalog.find_movie(title)
    if found is None:
        pool = catalog.series if series else catalog.movies
        hints = suggest_titles(pool, title)
        print(f"Title not found: {title}", file=sys.stderr)
        if hints:
            print("Did you mean: " + "; ".join(hints), file=sys.stderr)
    return found


def _list_categories(catalog: MediaCatalog) -> None:
    data = [{'category': c.name, 'name': c.display_name, 'count': len(catalog.by_category(c))}
            for c in MovieCategory]
    print(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode())


def _build_lineup(catalog: MediaCatalog, args) -> Optional[Experience]:
    service = CuratedExperienceService(catalog, random.Random(args.seed))
    if args.mission is not None:
        return service.build_random_mission(args.mission)
    if args.marathon is not None:
        return service.build_chronological_marathon(args.marathon)
    if args.double_feature:
        return service.build_double_feature()
    return None


def _print_lineup(lineup: Experience) -> None:
    if not lineup.movies:
        print("No curated lineup available for that choice yet.")
        return
    print(lineup.title)
    print(lineup.description)
    for m in lineup.movies:
        print("-", format_movie(m))


def _print_events(events: List[TimelineEvent], empty: str, show_characters: bool) -> None:
    if not events:
        print(empty)
    for e in events:
        print(f"- {e.title} ({e.era}, {e.year})")
        if show_characters:
            if e.characters:
                print("  Participants: " + ", ".join(e.characters))
        elif e.description:
            print("  " + e.description)
        if e.media:
            print("  Watch in: " + ", ".join(e.media))


def _print_lore(lore: LoreRepository, args) -> None:
    if args.character:
        matches = lore.find_characters(args.character)
        if not matches:
            print("No characters matched that query.")
        for c in matches:
            print(c.name)
            if c.aliases:
                print("  Aliases: " + ", ".join(c.aliases))
            if c.affiliations:
                print("  Affiliations: " + ", ".join(c.affiliations))
            if c.homeworld:
                print("  Homeworld: " + c.homeworld)
            if c.biography:
                print("  Bio: " + c.biography)
            if c.media:
                print("  Appears in: " + ", ".join(c.media))
    if args.planet:
        planets = lore.find_planets(args.planet)
        if not planets:
            print("No planets matched that query.")
        for p in planets:
            print(f"{p.name} - {p.region}")
            if p.description:
                print("  " + p.description)
            if p.events:
                print("  Notable events: " + ", ".join(p.events))
            if p.media:
                print("  Featured in: " + ", ".join(p.media))
    if args.events_with:
        _print_events(lore.events_featuring_character(args.events_with),
                      "No recorded events for that character.", show_characters=False)
    if args.events_at:
        _print_events(lore.events_at_location(args.events_at),
                      "No events logged for that location.", show_characters=True)


def main(argv=None) -> int:
    args = _parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    if args.data_dir:
        config = config.with_data_dir(args.data_dir)

    catalog = load_catalog(str(config.movies_file), str(config.series_file))
    limit = config.search_limit if args.limit is None else args.limit
    pool = catalog.series if args.series else catalog.movies

    # Handle simple listing flags early
    if args.list_categories:
        _list_categories(catalog)
        return 0
    if args.list_eras:
        print(orjson.dumps({'movies': catalog.movie_eras(), 'series': catalog.series_eras()},
                           option=orjson.OPT_INDENT_2).decode())
        return 0
    if args.category:
        try:
            category = MovieCategory[args.category.strip().upper()]
        except KeyError:
            print(f"Unknown category: {args.category}", file=sys.stderr)
            return 1
        for m in catalog.by_category(category):
            print("-", format_movie(m))
        return 0

    try:
        prefs = load_preferences(str(config.preferences_file))
    except ValueError as e:
        print(f"Invalid preferences file: {e}", file=sys.stderr)
        return 2
    watchlist = WatchlistManager(str(config.watchlist_file))
    watchlist.load()
    media_type = MediaType.SERIES if args.series else MediaType.MOVIE

    if args.favorite:
        found = _resolve(catalog, args.favorite, args.series)
        if found is None:
            return 1
        if args.series:
            now_favorite = prefs.toggle_favorite_series(found.title)
        else:
            now_favorite = prefs.toggle_favorite_movie(found.title)
        if not save_preferences(str(config.preferences_file), prefs):
            print(f"Failed to save preferences: {get_last_save_error() or 'unknown error'}", file=sys.stderr)
            return 2
        print(f"{'Added to' if now_favorite else 'Removed from'} favourites: {found.title}")

    if args.plan:
        found = _resolve(catalog, args.plan, args.series)
        if found is None:
            return 1
        watchlist.upsert(found.title, media_type, WatchStatus.PLANNED)
        if not watchlist.save():
            print(watchlist.last_error, file=sys.stderr)
            return 2
        print(f"Added to watchlist: {found.title}")

    if args.watched:
        found = _resolve(catalog, args.watched, args.series)
        if found is None:
            return 1
        try:
            entry = watchlist.mark_completed(found.title, media_type, rating=args.rating)
        except ValueError as e:
            print(f"Invalid rating: {e}", file=sys.stderr)
            return 1
        if watchlist.last_error:
            print(watchlist.last_error, file=sys.stderr)
            return 2
        print(f"Watched {entry.title} ({entry.times_watched}x, rating {entry.rating}/5)")

    lineup = _build_lineup(catalog, args)
    if lineup is not None:
        _print_lineup(lineup)
        if args.queue and lineup.movies:
            for m in lineup.movies:
                watchlist.upsert(m.title, MediaType.MOVIE, WatchStatus.PLANNED)
            if not watchlist.save():
                print(f"Failed to update watchlist: {watchlist.last_error}", file=sys.stderr)
                return 2
            print("Queued the experience on your watchlist.")

    lore_wanted = any([args.character, args.planet, args.events_with, args.events_at, args.briefing])
    if lore_wanted:
        try:
            lore = load_lore(str(config.data_dir / LORE_FILE))
        except ValueError as e:
            print(f"Invalid lore file: {e}", file=sys.stderr)
            return 2
        if args.briefing:
            found = _resolve(catalog, args.briefing, False)
            if found is None:
                return 1
            briefing = build_story_briefing(found, lore)
            print(briefing.title)
            for paragraph in briefing.paragraphs:
                print()
                print(paragraph)
        _print_lore(lore, args)

    searched = [q for q in (args.query, args.keyword, args.suggest) if q]
    if args.query:
        _print_results(search_entries(pool, args.query, limit), args.format)
    if args.keyword:
        matches = catalog.search_series(args.keyword) if args.series else catalog.search_movies(args.keyword)
        if matches:
            for m in matches:
                print("-", m.describe() if args.series else format_movie(m))
        else:
            hints = suggest_titles(pool, args.keyword, limit)
            if hints:
                print("No exact matches. Did you mean: " + "; ".join(hints))
            else:
                print("No matching results found.")
    if args.suggest:
        hints = suggest_titles(pool, args.suggest, limit)
        if args.format == 'json':
            print(orjson.dumps(hints).decode())
        else:
            for title in hints:
                print("-", title)
    if searched:
        for term in searched:
            prefs.add_recent_search(term)
        if not save_preferences(str(config.preferences_file), prefs):
            logger.warning("Could not record recent searches: %s", get_last_save_error())

    if args.favorites:
        print("Favourite films:")
        for title in prefs.favorite_movies:
            print("-", title)
        print("Favourite series:")
        for title in prefs.favorite_series:
            print("-", title)
    if args.watchlist:
        entries = watchlist.entries()
        if not entries:
            print("Watchlist is empty.")
        for e in entries:
            print(f"- {e.title} [{e.type.value}] {e.status.value} rating {e.rating}/5 watched {e.times_watched}x")
    if args.achievements:
        tracker = AchievementTracker(catalog)
        for achievement, pct in tracker.percentages(watchlist.completed_titles()).items():
            print(f"- {achievement.description}: {pct}%")
    if args.recent:
        for term in prefs.recent_searches:
            print("-", term)

    acted = any([args.favorite, args.plan, args.watched, searched, args.favorites,
                 args.watchlist, args.achievements, args.recent, lineup is not None, lore_wanted])
    if not acted:
        # nothing requested: print the catalogue in release order
        print(f"{len(catalog.movies)} films, {len(catalog.series)} series")
        for m in catalog.sorted_movies():
            print("-", format_movie(m))
    return 0


if __name__ == '__main__':
    sys.exit(main())
