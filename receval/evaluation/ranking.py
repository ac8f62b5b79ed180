"""
Ranking Preprocessor.

Turns a (predictions, test) pair into, per user, a relevance-labeled list
sorted by descending predicted score. All ranking metrics share it.

Ordering: descending score, ties broken by ascending item id.
Labels:
- binary: 1.0 if the test rating >= threshold, else 0.0
- graded: the raw test rating, 0.0 if the item is not in test

Sequences are built for test users only: a user without ground truth has
nothing to be relevant to. Test users without candidate items get an empty
list; metrics treat them as undefined rather than as scoring zero.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional

from ..data.preference_store import PreferenceStore
from ..exceptions import ConfigurationError
from .strategies import CandidateStrategy

logger = logging.getLogger(__name__)


BINARY = 'binary'
GRADED = 'graded'
RELEVANCE_MODES = (BINARY, GRADED)


@dataclass(frozen=True)
class RankedItem:
    """One entry of a user's relevance sequence."""
    item: Hashable
    score: float
    relevance: float


RelevanceSequences = Dict[Hashable, List[RankedItem]]


def relevance_label(rating: Optional[float], mode: str, threshold: float) -> float:
    """Relevance of an item given its test rating (None if not in test)."""
    if mode == GRADED:
        return float(rating) if rating is not None else 0.0
    return 1.0 if rating is not None and rating >= threshold else 0.0


class RankingPreprocessor:
    """
    Builds per-user relevance sequences.

    Example:
        >>> preprocessor = RankingPreprocessor(relevance='binary', threshold=3.0)
        >>> sequences = preprocessor.build(predictions, test, strategy)
        >>> [r.item for r in sequences[user]]
    """

    def __init__(self, relevance: str = BINARY, threshold: float = 1.0):
        """
        Args:
            relevance: 'binary' or 'graded'
            threshold: Minimum test rating for binary relevance

        Raises:
            ConfigurationError: If the relevance mode is unknown
        """
        if relevance not in RELEVANCE_MODES:
            raise ConfigurationError(
                f"Unknown relevance mode: {relevance}. Available: {list(RELEVANCE_MODES)}"
            )
        self.relevance = relevance
        self.threshold = threshold

    def build(
        self,
        predictions: PreferenceStore,
        test: PreferenceStore,
        strategy: Optional[CandidateStrategy] = None
    ) -> RelevanceSequences:
        """
        Build the relevance sequence of every test user.

        Args:
            predictions: Predicted scores
            test: Ground-truth ratings
            strategy: Candidate strategy; when None every predicted item of
                the user is a candidate

        Returns:
            Dict mapping user to its sorted list of RankedItem
        """
        users = sorted(test.users())
        sequences = {}
        empty = 0

        for user in users:
            sequences[user] = self.build_user(user, predictions, test, strategy)
            if not sequences[user]:
                empty += 1

        logger.debug(
            f"Built relevance sequences for {len(users)} users "
            f"({empty} without candidates, relevance={self.relevance})"
        )
        return sequences

    def build_user(
        self,
        user: Hashable,
        predictions: PreferenceStore,
        test: PreferenceStore,
        strategy: Optional[CandidateStrategy] = None
    ) -> List[RankedItem]:
        """Relevance sequence of one user; empty for users absent from test."""
        user_test = test.user_preferences(user)
        if not user_test:
            return []

        user_preds = predictions.user_preferences(user)
        if strategy is None:
            candidates = set(user_preds)
        else:
            candidates = strategy.candidate_items(user) & user_preds.keys()

        ranked = sorted(candidates, key=lambda item: (-user_preds[item], item))
        return [
            RankedItem(
                item=item,
                score=user_preds[item],
                relevance=relevance_label(user_test.get(item), self.relevance, self.threshold),
            )
            for item in ranked
        ]
