"""
Random Split Module

Partitions a PreferenceStore into training and test stores with reproducible
randomization, either per user or over the whole dataset.

Key Features:
- Per-user split: each user's items are shuffled and a fraction held out
- Global split: all (user, item, rating) triples shuffled together
- Determinism: one seeded generator per split() call, consumed in canonical
  (sorted user, sorted item) order, so the same inputs give the same folds
- Partition guarantees: train and test are disjoint, their union is the
  input, timestamps travel with their (user, item) pair
- Rounding policy: floor(test_fraction * n), at least one test item when
  n >= 2, never all of a user's items (every rated user stays in train)

Usage:
    splitter = RandomSplitter(test_fraction=0.2, per_user=True, seed=42)
    folds = splitter.split(store)
    train, test = folds[0].train, folds[0].test
"""

import logging
import math
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ...exceptions import ConfigurationError, InsufficientDataWarning
from ..preference_store import PreferenceStore


logger = logging.getLogger(__name__)


Pair = Tuple[Hashable, Hashable]


@dataclass(frozen=True)
class Fold:
    """One train/test partition produced by a splitter."""
    index: int
    train: PreferenceStore
    test: PreferenceStore

    def __iter__(self):
        return iter((self.train, self.test))


def validate_test_fraction(test_fraction: float) -> float:
    """Check that test_fraction lies in the open interval (0, 1)."""
    try:
        value = float(test_fraction)
    except (TypeError, ValueError):
        raise ConfigurationError(f"test_fraction must be a number, got {test_fraction!r}")
    if math.isnan(value) or not 0.0 < value < 1.0:
        raise ConfigurationError(f"test_fraction must be in (0, 1), got {test_fraction}")
    return value


def compute_test_size(n: int, test_fraction: float) -> int:
    """
    Number of the n interactions that go to test.

    floor(test_fraction * n), raised to 1 when that is 0 and n >= 2, and
    capped at n - 1 so at least one interaction always stays in train.
    A single interaction therefore always stays in train.
    """
    if n <= 1:
        return 0
    n_test = int(math.floor(test_fraction * n))
    if n_test == 0:
        n_test = 1
    return min(n_test, n - 1)


def build_partition(
    store: PreferenceStore,
    test_pairs: Iterable[Pair],
    pairs: Optional[Iterable[Pair]] = None
) -> Tuple[PreferenceStore, PreferenceStore]:
    """
    Copy `store` into (train, test), routing `test_pairs` to test.

    Args:
        store: Source store (not modified)
        test_pairs: (user, item) pairs assigned to test
        pairs: Pairs to distribute; defaults to every pair of `store`

    Returns:
        Tuple of (train, test) stores, timestamps included
    """
    test_set = set(test_pairs)
    if pairs is None:
        pairs = [(user, item) for user, item, _ in store.triples()]

    train, test = PreferenceStore(), PreferenceStore()
    for user, item in pairs:
        target = test if (user, item) in test_set else train
        target.add_preference(user, item, store.get_preference(user, item))
        time = store.get_timestamp(user, item)
        if time is not None:
            target.add_timestamp(user, item, time)
    return train, test


class BaseSplitter(ABC):
    """
    Abstract base class for splitters.

    Subclasses implement split(store) -> List[Fold] and fill split_metadata
    with counts and diagnostics of the last call.
    """

    def __init__(self, name: str):
        self.name = name
        self.split_metadata: Dict[str, Any] = {}

    @abstractmethod
    def split(self, store: PreferenceStore) -> List[Fold]:
        pass

    def _canonical_user_items(self, store: PreferenceStore) -> List[Tuple[Hashable, List[Hashable]]]:
        prefs = store.preferences()
        return [(user, sorted(prefs[user])) for user in sorted(prefs)]

    def _ordered_items(self, store: PreferenceStore, user: Hashable,
                       items: List[Hashable]) -> List[Hashable]:
        """Chronological order (item id tie-break); untimed items come first."""
        def key(item):
            time = store.get_timestamp(user, item)
            return (time is not None, time if time is not None else 0, item)
        return sorted(items, key=key)

    def _warn_sparse_users(self, sparse_users: Sequence[Hashable], min_ratings: int):
        if not sparse_users:
            return
        message = (
            f"{len(sparse_users)} users have fewer than {min_ratings} ratings "
            f"and are not guaranteed to appear in test"
        )
        logger.warning(message)
        warnings.warn(message, InsufficientDataWarning, stacklevel=3)

    def _record_metadata(self, folds: List[Fold], **extra):
        self.split_metadata = {
            'splitter': self.name,
            'num_folds': len(folds),
            'folds': [
                {
                    'index': fold.index,
                    'train_interactions': fold.train.num_preferences(),
                    'test_interactions': fold.test.num_preferences(),
                    'train_users': len(fold.train.users()),
                    'test_users': len(fold.test.users()),
                }
                for fold in folds
            ],
        }
        self.split_metadata.update(extra)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


class RandomSplitter(BaseSplitter):
    """
    Random train/test splitter.

    Per-user mode guarantees every user with at least one rating appears in
    train, and every user with at least two ratings appears in test. Users
    with fewer than ceil(1 / test_fraction) ratings are reported as sparse.
    """

    def __init__(
        self,
        test_fraction: float = 0.2,
        per_user: bool = True,
        seed: Optional[int] = 42,
        keep_order: bool = False,
        n_repeats: int = 1
    ):
        """
        Initialize random splitter.

        Args:
            test_fraction: Fraction of interactions held out, in (0, 1)
            per_user: Split each user's ratings separately (True) or the
                whole dataset at once (False)
            seed: Seed of the generator; one generator per split() call
            keep_order: Do not shuffle; hold out the latest interactions
                (by timestamp, then item id) instead
            n_repeats: Number of independent random folds to draw; all
                come from the same generator, in fold order

        Raises:
            ConfigurationError: If test_fraction is outside (0, 1) or
                n_repeats is not a positive integer
        """
        super().__init__(name='random')
        self.test_fraction = validate_test_fraction(test_fraction)
        self.per_user = per_user
        self.seed = seed
        self.keep_order = keep_order
        if isinstance(n_repeats, bool) or not isinstance(n_repeats, int) or n_repeats < 1:
            raise ConfigurationError(f"n_repeats must be a positive integer, got {n_repeats!r}")
        self.n_repeats = n_repeats

    def split(self, store: PreferenceStore) -> List[Fold]:
        """
        Split a store into n_repeats (train, test) folds.

        Args:
            store: Interactions to split (not modified)

        Returns:
            List of Folds numbered 0..n_repeats-1
        """
        logger.info(
            f"Starting random split: test_fraction={self.test_fraction}, "
            f"per_user={self.per_user}, seed={self.seed}, keep_order={self.keep_order}, "
            f"n_repeats={self.n_repeats}"
        )
        logger.info(f"Input: {store.num_preferences()} interactions from {len(store.users())} users")

        rng = np.random.default_rng(self.seed)
        folds = []
        sparse_users: List[Hashable] = []
        for i in range(self.n_repeats):
            if self.per_user:
                test_pairs, sparse_users = self._per_user_test_pairs(store, rng)
            else:
                test_pairs = self._global_test_pairs(store, rng)

            train, test = build_partition(store, test_pairs)
            folds.append(Fold(index=i, train=train, test=test))
            logger.info(f"  Fold {i}: Train={train.num_preferences()}, Test={test.num_preferences()}")

        min_ratings = int(math.ceil(1.0 / self.test_fraction))
        self._warn_sparse_users(sparse_users, min_ratings)
        self._record_metadata(
            folds,
            test_fraction=self.test_fraction,
            per_user=self.per_user,
            seed=self.seed,
            keep_order=self.keep_order,
            n_repeats=self.n_repeats,
            sparse_users=list(sparse_users),
        )

        logger.info(f"Split complete: {len(folds)} fold(s)")
        return folds

    def _per_user_test_pairs(
        self,
        store: PreferenceStore,
        rng: np.random.Generator
    ) -> Tuple[List[Pair], List[Hashable]]:
        min_ratings = int(math.ceil(1.0 / self.test_fraction))
        test_pairs = []
        sparse_users = []

        for user, items in self._canonical_user_items(store):
            if self.keep_order:
                ordered = self._ordered_items(store, user, items)
                n_test = compute_test_size(len(ordered), self.test_fraction)
                held_out = ordered[len(ordered) - n_test:] if n_test else []
            else:
                ordered = [items[i] for i in rng.permutation(len(items))]
                n_test = compute_test_size(len(ordered), self.test_fraction)
                held_out = ordered[:n_test]

            test_pairs.extend((user, item) for item in held_out)
            if len(items) < min_ratings:
                sparse_users.append(user)
                logger.debug(f"User {user} has {len(items)} ratings (< {min_ratings})")

        return test_pairs, sparse_users

    def _global_test_pairs(self, store: PreferenceStore, rng: np.random.Generator) -> List[Pair]:
        pairs = [(user, item) for user, item, _ in store.triples()]

        if self.keep_order:
            def key(pair):
                time = store.get_timestamp(*pair)
                return (time is not None, time if time is not None else 0, pair)
            ordered = sorted(pairs, key=key)
            n_test = compute_test_size(len(ordered), self.test_fraction)
            return ordered[len(ordered) - n_test:] if n_test else []

        ordered = [pairs[i] for i in rng.permutation(len(pairs))]
        n_test = compute_test_size(len(ordered), self.test_fraction)
        return ordered[:n_test]
