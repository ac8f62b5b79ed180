"""
Pytest configuration and shared fixtures
"""
import pytest

from receval.data import PreferenceStore


def make_store(ratings, timestamps=None):
    """Build a store from {user: {item: rating}} (and optional timestamps)."""
    store = PreferenceStore()
    for user, prefs in ratings.items():
        for item, value in prefs.items():
            store.add_preference(user, item, value)
    for user, times in (timestamps or {}).items():
        for item, time in times.items():
            store.add_timestamp(user, item, time)
    return store


@pytest.fixture
def scenario_store():
    """Two users, three ratings: u1 -> {i1: 5, i2: 3}, u2 -> {i1: 4}"""
    return make_store({'u1': {'i1': 5.0, 'i2': 3.0}, 'u2': {'i1': 4.0}})


@pytest.fixture
def ratings_store():
    """
    Six users with 4 to 9 timestamped ratings each.

    User u rates items 1..u+3 with rating (u + item) % 5 + 1 at time
    1000 * u + item, so later items are always more recent.
    """
    ratings, timestamps = {}, {}
    for user in range(1, 7):
        items = range(1, user + 4)
        ratings[user] = {item: float((user + item) % 5 + 1) for item in items}
        timestamps[user] = {item: 1000 * user + item for item in items}
    return make_store(ratings, timestamps)


@pytest.fixture
def single_rating_store():
    """One user with a single rating"""
    return make_store({1: {10: 4.0}}, {1: {10: 100}})


def pairs(store):
    """Set of (user, item) pairs of a store."""
    return {(user, item) for user, item, _ in store.triples()}
