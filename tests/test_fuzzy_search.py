from pathlib import Path
from types import SimpleNamespace

import pytest
from rapidfuzz.distance import Levenshtein

from fuzzy_search import (
    MINIMUM_SCORE, TOKEN_BOOST, build_aliases, normalize, roman_to_arabic,
    score_entity, search_entries, similarity, suggest_titles,
)
from media_catalog import Movie, MovieCategory, load_movies

DATA_DIR = Path(__file__).resolve().parents[1] / 'data'

EMPIRE = Movie('The Empire Strikes Back', 1980, MovieCategory.SAGA, episode_number=5, episode_roman='V')
JEDI = Movie('Return of the Jedi', 1983, MovieCategory.SAGA, episode_number=6, episode_roman='VI')
ROGUE = Movie('Rogue One', 2016, MovieCategory.ANTHOLOGY)
CATALOG = [EMPIRE, JEDI, ROGUE]


# ---------- normalize ----------
@pytest.mark.parametrize('raw, expected', [
    (None, ''),
    ('', ''),
    ('  Hello,   World!  ', 'hello world'),
    ('Crème Brûlée', 'creme brulee'),
    ('Star Wars: Episode IV – A New Hope', 'star wars episode 4 a new hope'),
    ('Episode five', 'episode 5'),
    ('EPISODE IX', 'episode 9'),
    ('episode viii', 'episode 8'),
    ('Episode-V', 'episode 5'),
    ('episode    vi', 'episode 6'),
    ('Episode Ivory', 'episode ivory'),
])
def test_normalize(raw, expected):
    assert normalize(raw) == expected


@pytest.mark.parametrize('raw', [
    'Star Wars: Episode I - The Phantom Menace',
    'Épisode  II -- Attack of the Clones',
    'episode-iii',
    'Episode   IV...',
    'İstanbul straße',
    'episode episode ix',
    '!!!',
    'Rogue One: A Star Wars Story',
])
def test_normalize_is_idempotent(raw):
    once = normalize(raw)
    assert normalize(once) == once


def test_roman_to_arabic_table():
    assert roman_to_arabic('V') == '5'
    assert roman_to_arabic('ix') == '9'
    # outside the fixed table the input comes back untouched
    assert roman_to_arabic('X') == 'X'
    assert roman_to_arabic('MCM') == 'MCM'


# ---------- aliases ----------
def test_build_aliases_compound_title():
    movie = Movie('Star Wars: Episode V - The Empire Strikes Back', 1980, MovieCategory.SAGA,
                  episode_number=5, episode_roman='V', era='Age of Rebellion')
    aliases = build_aliases(movie)
    assert aliases[0] == 'star wars episode 5 the empire strikes back'
    assert set(aliases) == {
        'star wars episode 5 the empire strikes back',
        'episode 5',
        'age of rebellion',
        'star wars',
        'the empire strikes back',
        'episode 5 the empire strikes back',
    }
    # duplicates collapse
    assert len(aliases) == len(set(aliases))


def test_build_aliases_strips_only_leading_franchise_name():
    movie = Movie('Rogue One: A Star Wars Story', 2016, MovieCategory.ANTHOLOGY)
    aliases = build_aliases(movie)
    assert 'rogue one a story' not in aliases
    assert aliases == ('rogue one a star wars story', 'rogue one', 'a star wars story')

    prefixed = build_aliases(SimpleNamespace(title='  Star Wars Rebels'))
    assert 'rebels' in prefixed


def test_build_aliases_title_only_entity():
    assert build_aliases(SimpleNamespace(title='Andor')) == ('andor',)


def test_build_aliases_skips_empty_fragments():
    aliases = build_aliases(SimpleNamespace(title='Star Wars', era='', notes='---'))
    assert '' not in aliases
    assert aliases == ('star wars',)


def test_build_aliases_rejects_blank_title():
    with pytest.raises(ValueError):
        build_aliases(SimpleNamespace(title='  '))
    with pytest.raises(ValueError):
        build_aliases(SimpleNamespace(title=None))


# ---------- similarity ----------
def test_similarity_empty_candidate():
    assert similarity('empire', '') == 0.0


def test_similarity_substring_short_circuit():
    assert similarity('empire', 'the empire strikes back') == 1.0
    assert similarity('episode 5', 'episode 5') == 1.0


def test_similarity_token_boost():
    query, candidate = 'empire zzzz', 'the empire strikes back'
    base = 1.0 - Levenshtein.distance(query, candidate) / len(candidate)
    assert similarity(query, candidate) == pytest.approx(base + TOKEN_BOOST)


def test_similarity_no_shared_tokens():
    query, candidate = 'abcd', 'wxyz'
    assert similarity(query, candidate) == 0.0


@pytest.mark.parametrize('query, candidate', [
    ('empier stikes bak', 'the empire strikes back'),
    ('a b c d e f', 'a b c d e f g'),
    ('jedi return', 'return of the jedi'),
    ('x', 'episode 5'),
])
def test_similarity_bounds(query, candidate):
    assert 0.0 <= similarity(query, candidate) <= 1.0


def test_score_entity_applies_and_clamps_bias():
    match = score_entity('rogue one', ROGUE)
    assert match == ('rogue one', 1.0)
    # no bias for categories missing from the map
    raw = score_entity('rouge', ROGUE, category_bias={})
    biased = score_entity('rouge', ROGUE)
    assert biased.score == pytest.approx(raw.score + 0.03)


# ---------- ranking ----------
def test_exact_title_query():
    results = search_entries(CATALOG, 'empire strikes back', 5)
    top = results[0]
    assert top.value is EMPIRE
    assert top.score == 1.0
    assert top.matched_field == 'the empire strikes back'


def test_typo_query_still_ranks_first():
    results = search_entries(CATALOG, 'empier stikes bak', 5)
    assert results[0].value is EMPIRE
    assert MINIMUM_SCORE <= results[0].score < 1.0


def test_roman_numeral_episode_query():
    results = search_entries(CATALOG, 'episode v', 5)
    assert results[0].value is EMPIRE
    assert results[0].score == 1.0
    assert results[0].matched_field == 'episode 5'


def test_partial_title_query():
    results = search_entries(CATALOG, 'rogue', 5)
    assert results[0].value is ROGUE
    assert results[0].score == 1.0
    assert all(r.score <= results[0].score for r in results[1:])


def test_nonsense_query_returns_nothing():
    assert search_entries(CATALOG, 'xyzzy nonsense', 5) == []


def test_category_bias_is_applied_before_threshold():
    # Rogue One scores 1 - 10/14 raw, just under the threshold
    assert search_entries([ROGUE], 'xyzzy nonsense', category_bias={}) == []
    nudged = search_entries([ROGUE], 'xyzzy nonsense', category_bias={MovieCategory.ANTHOLOGY: 0.05})
    assert [r.value for r in nudged] == [ROGUE]


@pytest.mark.parametrize('query', [None, '', '   ', '!!!', '--'])
def test_blank_queries_return_empty(query):
    assert search_entries(CATALOG, query, 5) == []


def test_empty_catalog():
    assert search_entries([], 'empire', 5) == []


def test_ties_keep_catalog_order():
    first = SimpleNamespace(title='Andor')
    second = SimpleNamespace(title='Andor')
    results = search_entries([first, second], 'andor')
    assert [r.value for r in results] == [first, second]


def test_suggest_titles_deduplicates():
    twin = Movie('Rogue One', 2016, MovieCategory.ANTHOLOGY)
    assert suggest_titles([ROGUE, twin], 'rogue one', 5) == ['Rogue One']


def test_suggest_titles_default_limit():
    movies = [SimpleNamespace(title=f'Andor {i}') for i in range(8)]
    assert len(suggest_titles(movies, 'andor', 0)) == 5
    assert len(suggest_titles(movies, 'andor', -3)) == 5


# ---------- properties over the bundled catalogue ----------
@pytest.fixture(scope='module')
def sample_movies():
    movies = load_movies(str(DATA_DIR / 'movies.json'))
    assert movies
    return movies


@pytest.mark.parametrize('query', [
    'empire', 'episode iv', 'clone wars', 'death star', 'jedi', 'han solo',
    'phantom menac', 'skywalker', 'holiday', 'new republic', 'zzzz',
])
def test_ranking_properties(sample_movies, query):
    results = search_entries(sample_movies, query)
    scores = [r.score for r in results]
    assert all(MINIMUM_SCORE <= s <= 1.0 for s in scores)
    assert scores == sorted(scores, reverse=True)
    assert len(search_entries(sample_movies, query, 3)) <= 3


def test_episode_word_query_on_full_catalogue(sample_movies):
    results = search_entries(sample_movies, 'Episode Four')
    hit = next(r for r in results if r.value.title == 'Star Wars: Episode IV - A New Hope')
    assert hit.score == 1.0
    assert hit.matched_field == 'star wars episode 4 a new hope'
    # neighbouring episodes are one edit away and get clamped to 1.0 as well,
    # so the saga films keep their catalogue order at the top
    assert [r.value.episode_number for r in results[:4]] == [1, 2, 3, 4]
