"""
Cross-Validation Split Module

k-fold splitting of a PreferenceStore. Interactions are shuffled once with a
seeded generator (per user or globally, in canonical sorted order) and dealt
round-robin into n buckets; fold i tests on bucket i and trains on the rest.

Every interaction is in the test side of exactly one fold, and each fold is a
disjoint partition of the input.

Usage:
    splitter = CrossValidationSplitter(n_folds=5, per_user=True, seed=42)
    for fold in splitter.split(store):
        train, test = fold
"""

import logging
from typing import Hashable, List, Optional

import numpy as np

from ...exceptions import ConfigurationError
from ..preference_store import PreferenceStore
from .random_split import BaseSplitter, Fold, Pair, build_partition


logger = logging.getLogger(__name__)


class CrossValidationSplitter(BaseSplitter):
    """n-fold cross-validation splitter."""

    def __init__(self, n_folds: int = 5, per_user: bool = True, seed: Optional[int] = 42):
        """
        Args:
            n_folds: Number of folds (>= 2)
            per_user: Deal each user's ratings separately
            seed: Seed of the shuffling generator

        Raises:
            ConfigurationError: If n_folds < 2
        """
        super().__init__(name='cross_validation')
        if not isinstance(n_folds, int) or isinstance(n_folds, bool) or n_folds < 2:
            raise ConfigurationError(f"n_folds must be an integer >= 2, got {n_folds!r}")
        self.n_folds = n_folds
        self.per_user = per_user
        self.seed = seed

    def split(self, store: PreferenceStore) -> List[Fold]:
        logger.info(
            f"Starting {self.n_folds}-fold cross-validation split: "
            f"per_user={self.per_user}, seed={self.seed}"
        )

        rng = np.random.default_rng(self.seed)
        buckets: List[List[Pair]] = [[] for _ in range(self.n_folds)]
        sparse_users: List[Hashable] = []

        if self.per_user:
            for user, items in self._canonical_user_items(store):
                shuffled = [items[i] for i in rng.permutation(len(items))]
                for pos, item in enumerate(shuffled):
                    buckets[pos % self.n_folds].append((user, item))
                if len(items) < self.n_folds:
                    sparse_users.append(user)
        else:
            pairs = [(user, item) for user, item, _ in store.triples()]
            for pos, idx in enumerate(rng.permutation(len(pairs))):
                buckets[pos % self.n_folds].append(pairs[idx])

        folds = []
        for i, bucket in enumerate(buckets):
            train, test = build_partition(store, bucket)
            folds.append(Fold(index=i, train=train, test=test))
            logger.info(f"  Fold {i}: Train={train.num_preferences()}, Test={test.num_preferences()}")

        self._warn_sparse_users(sparse_users, self.n_folds)
        self._record_metadata(
            folds,
            n_folds=self.n_folds,
            per_user=self.per_user,
            seed=self.seed,
            sparse_users=sparse_users,
        )
        return folds
