import json

import pytest

import preferences
from preferences import (
    MAX_RECENT_SEARCHES, UserPreferences, get_last_save_error,
    load_preferences, save_preferences,
)


def test_missing_file_gives_defaults(tmp_path):
    prefs = load_preferences(str(tmp_path / 'prefs.json'))
    assert prefs == UserPreferences()


def test_save_and_load_roundtrip(tmp_path):
    path = tmp_path / 'nested' / 'prefs.json'
    prefs = UserPreferences()
    prefs.add_favorite_movie('Rogue One: A Star Wars Story')
    prefs.add_favorite_series('Andor')
    prefs.add_recent_search('empire')
    prefs.add_recent_search('clone wars')
    prefs.acknowledge_achievement('SAGA_COMPLETE')
    prefs.emoji_output = True
    prefs.last_movie_filter = 'SAGA'

    assert save_preferences(str(path), prefs)
    assert get_last_save_error() is None

    # file is valid json with the documented keys
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    assert data['favoriteMovies'] == ['Rogue One: A Star Wars Story']
    assert data['recentSearches'] == ['clone wars', 'empire']

    loaded = load_preferences(str(path))
    assert loaded == prefs


def test_toggle_favorites():
    prefs = UserPreferences()
    assert prefs.toggle_favorite_movie('Solo: A Star Wars Story') is True
    assert prefs.favorite_movies == ['Solo: A Star Wars Story']
    assert prefs.toggle_favorite_movie('Solo: A Star Wars Story') is False
    assert prefs.favorite_movies == []

    prefs.add_favorite_series('Andor')
    prefs.add_favorite_series('Andor')
    assert prefs.favorite_series == ['Andor']
    assert prefs.toggle_favorite_series('Andor') is False


def test_recent_searches_capped_and_moved_to_front():
    prefs = UserPreferences()
    for i in range(MAX_RECENT_SEARCHES + 3):
        prefs.add_recent_search(f'query {i}')
    assert len(prefs.recent_searches) == MAX_RECENT_SEARCHES
    assert prefs.recent_searches[0] == f'query {MAX_RECENT_SEARCHES + 2}'

    prefs.add_recent_search('query 5')
    assert prefs.recent_searches[0] == 'query 5'
    assert prefs.recent_searches.count('query 5') == 1

    prefs.add_recent_search('   ')
    prefs.add_recent_search(None)
    assert prefs.recent_searches[0] == 'query 5'


def test_from_dict_ignores_wrong_types():
    prefs = UserPreferences.from_dict({
        'favoriteMovies': ['A New Hope', 3, None],
        'favoriteSeries': 'Andor',
        'colorizedOutput': 'yes',
        'emojiOutput': True,
        'lastSeriesFilter': 12,
        'recentSearches': ['newest', 'older', 'oldest'],
    })
    assert prefs.favorite_movies == ['A New Hope']
    assert prefs.favorite_series == []
    assert prefs.colorized_output is False
    assert prefs.emoji_output is True
    assert prefs.last_series_filter is None
    assert prefs.recent_searches == ['newest', 'older', 'oldest']


def test_achievement_acknowledgement():
    prefs = UserPreferences()
    prefs.acknowledge_achievement('SAGA_COMPLETE')
    prefs.acknowledge_achievement('SAGA_COMPLETE')
    prefs.acknowledge_achievement(None)
    assert prefs.acknowledged_achievements == ['SAGA_COMPLETE']
    prefs.clear_acknowledged_achievements()
    assert prefs.acknowledged_achievements == []


def test_non_object_file_raises(tmp_path):
    path = tmp_path / 'prefs.json'
    path.write_text('[1, 2, 3]', encoding='utf-8')
    with pytest.raises(ValueError):
        load_preferences(str(path))


def test_corrupt_file_gives_defaults(tmp_path):
    path = tmp_path / 'prefs.json'
    path.write_text('{"favoriteMovies": [', encoding='utf-8')
    assert load_preferences(str(path)) == UserPreferences()


def test_save_failure_is_recorded(tmp_path, monkeypatch):
    # Simulate an IO error when writing the file
    def fake_write(path, payload):
        raise OSError("disk full (simulated)")

    monkeypatch.setattr(preferences, 'write_json_atomic', fake_write)
    ok = save_preferences(str(tmp_path / 'prefs.json'), UserPreferences())
    assert not ok
    err = get_last_save_error()
    assert err is not None and 'simulated' in err
    assert not (tmp_path / 'prefs.json').exists()
