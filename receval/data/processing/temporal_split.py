"""
Temporal Split Module

Chronological holdout: the latest interactions (per user or overall) go to
test, everything earlier to train. Requires a timestamp on every interaction.

Key Features:
- Per-user temporal split: latest fraction of each user's history -> test
- Global temporal split: latest fraction of all interactions -> test
- Same rounding policy as the random splitter (every rated user keeps at
  least one training interaction in per-user mode)
- Temporal validation: no test interaction predates a train interaction of
  the same user (per-user) or of the whole dataset (global)

Usage:
    splitter = TemporalSplitter(test_fraction=0.2, per_user=True)
    folds = splitter.split(store)
"""

import logging
from typing import List

from ...exceptions import ConfigurationError
from ..preference_store import PreferenceStore
from .random_split import (
    BaseSplitter,
    Fold,
    build_partition,
    compute_test_size,
    validate_test_fraction,
)


logger = logging.getLogger(__name__)


class TemporalSplitter(BaseSplitter):
    """
    Temporal splitter holding out the most recent interactions.

    Ties in timestamp are broken by item id (per user) or by
    (user, item) (global), so the split is fully deterministic.
    """

    def __init__(self, test_fraction: float = 0.2, per_user: bool = True):
        """
        Args:
            test_fraction: Fraction of interactions held out, in (0, 1)
            per_user: Hold out the latest interactions of each user (True)
                or of the whole dataset (False)
        """
        super().__init__(name='temporal')
        self.test_fraction = validate_test_fraction(test_fraction)
        self.per_user = per_user

    def split(self, store: PreferenceStore) -> List[Fold]:
        logger.info(
            f"Starting temporal split: test_fraction={self.test_fraction}, per_user={self.per_user}"
        )
        self._validate_inputs(store)

        if self.per_user:
            test_pairs = []
            for user, items in self._canonical_user_items(store):
                ordered = self._ordered_items(store, user, items)
                n_test = compute_test_size(len(ordered), self.test_fraction)
                if n_test:
                    test_pairs.extend((user, item) for item in ordered[-n_test:])
        else:
            pairs = sorted(
                ((user, item) for user, item, _ in store.triples()),
                key=lambda pair: (store.get_timestamp(*pair), pair)
            )
            n_test = compute_test_size(len(pairs), self.test_fraction)
            test_pairs = pairs[-n_test:] if n_test else []

        train, test = build_partition(store, test_pairs)
        self._validate_temporal_ordering(train, test)

        folds = [Fold(index=0, train=train, test=test)]
        self._record_metadata(folds, test_fraction=self.test_fraction, per_user=self.per_user)

        logger.info(f"Split complete: Train={train.num_preferences()}, Test={test.num_preferences()}")
        return folds

    def _validate_inputs(self, store: PreferenceStore):
        """Every interaction needs a timestamp."""
        missing = store.num_preferences() - sum(len(t) for t in store.timestamps().values())
        if missing:
            logger.error(f"Found {missing} interactions without timestamps")
            raise ConfigurationError(
                f"Temporal split requires timestamps; {missing} interactions have none"
            )

    def _validate_temporal_ordering(self, train: PreferenceStore, test: PreferenceStore):
        """Check that no test interaction is older than a train interaction it is split from."""
        train_times = train.timestamps()
        test_times = test.timestamps()

        if self.per_user:
            violations = 0
            for user, times in test_times.items():
                user_train = train_times.get(user)
                if user_train and min(times.values()) < max(user_train.values()):
                    violations += 1
            if violations:
                logger.warning(f"Temporal leakage for {violations} users")
            return

        if train_times and test_times:
            latest_train = max(max(t.values()) for t in train_times.values())
            earliest_test = min(min(t.values()) for t in test_times.values())
            if earliest_test < latest_train:
                logger.warning("Temporal leakage: test starts before the end of train")
