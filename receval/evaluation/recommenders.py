"""
Recommender Interface and Baseline Recommenders.

The evaluation core treats a recommender as a black box: fitted on a
training PreferenceStore, it returns a ranked list of (item, score) pairs
for a user. A failure for one user is a RecommendationFailure and only drops
that user's contribution.

Baselines (lower bounds for comparison):
- PopularityRecommender: items ranked by number of training ratings
- ItemAverageRecommender: items scored by their mean training rating
- RandomRecommender: seeded random scores

Example:
    >>> recommender = PopularityRecommender().fit(train)
    >>> predictions, failed = build_predictions(recommender, sorted(test.users()))
"""

from typing import Dict, Hashable, List, Optional, Sequence, Tuple
import numpy as np
import logging
from abc import ABC, abstractmethod

from ..data.preference_store import PreferenceStore
from ..exceptions import RecommendationFailure

logger = logging.getLogger(__name__)


Recommendation = Tuple[Hashable, float]


# ============================================================================
# Abstract Recommender
# ============================================================================

class Recommender(ABC):
    """
    Abstract base class for recommenders evaluated by receval.
    """

    def __init__(self, name: str, exclude_seen: bool = True):
        """
        Initialize recommender.

        Args:
            name: Recommender name
            exclude_seen: Skip items the user rated in train (use False with
                the train_items strategy, whose candidates are exactly those items)
        """
        self.name = name
        self.exclude_seen = exclude_seen
        self.train: Optional[PreferenceStore] = None

    def fit(self, train: PreferenceStore) -> 'Recommender':
        """Fit on training preferences and return self."""
        self.train = train
        self._fit(train)
        return self

    def _fit(self, train: PreferenceStore):
        pass

    def _check_fitted(self, user: Hashable):
        if self.train is None:
            raise RecommendationFailure(user, f"{self.name} is not fitted")

    def _rank(
        self,
        user: Hashable,
        scores: Dict[Hashable, float],
        k: Optional[int]
    ) -> List[Recommendation]:
        """Sort scores descending (item id tie-break), drop seen items, cut at k."""
        seen = set(self.train.user_preferences(user)) if self.exclude_seen else set()
        ranked = sorted(
            ((item, score) for item, score in scores.items() if item not in seen),
            key=lambda pair: (-pair[1], pair[0])
        )
        return ranked[:k] if k is not None else ranked

    @abstractmethod
    def recommend(self, user: Hashable, k: Optional[int] = None) -> List[Recommendation]:
        """
        Generate recommendations for a user.

        Args:
            user: User id
            k: Number of recommendations (None for all candidates)

        Returns:
            List of (item, score) pairs, best first

        Raises:
            RecommendationFailure: If no recommendation can be produced
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


# ============================================================================
# Baselines
# ============================================================================

class PopularityRecommender(Recommender):
    """Recommend the items with the most training ratings."""

    def __init__(self, exclude_seen: bool = True):
        super().__init__('popularity', exclude_seen)
        self.item_popularity: Dict[Hashable, float] = {}

    def _fit(self, train):
        counts: Dict[Hashable, float] = {}
        for prefs in train.preferences().values():
            for item in prefs:
                counts[item] = counts.get(item, 0.0) + 1.0
        self.item_popularity = counts
        logger.info(f"PopularityRecommender fitted on {len(counts)} items")

    def recommend(self, user, k=None):
        self._check_fitted(user)
        return self._rank(user, self.item_popularity, k)


class ItemAverageRecommender(Recommender):
    """
    Score every item by its mean training rating.

    Produces rating-scale predictions, so it is also a baseline for RMSE/MAE.
    """

    def __init__(self, exclude_seen: bool = True):
        super().__init__('item_average', exclude_seen)
        self.item_means: Dict[Hashable, float] = {}

    def _fit(self, train):
        ratings: Dict[Hashable, List[float]] = {}
        for prefs in train.preferences().values():
            for item, value in prefs.items():
                ratings.setdefault(item, []).append(value)
        self.item_means = {item: float(np.mean(values)) for item, values in ratings.items()}
        logger.info(f"ItemAverageRecommender fitted on {len(self.item_means)} items")

    def recommend(self, user, k=None):
        self._check_fitted(user)
        return self._rank(user, self.item_means, k)


class RandomRecommender(Recommender):
    """
    Random scores from a generator seeded at fit time.

    Results are reproducible when users are requested in the same order
    (build_predictions always uses sorted order).
    """

    def __init__(self, seed: Optional[int] = 42, exclude_seen: bool = True):
        super().__init__('random', exclude_seen)
        self.seed = seed
        self._items: List[Hashable] = []
        self._rng: Optional[np.random.Generator] = None

    def _fit(self, train):
        self._items = sorted(train.items())
        self._rng = np.random.default_rng(self.seed)

    def recommend(self, user, k=None):
        self._check_fitted(user)
        scores = self._rng.random(len(self._items))
        return self._rank(user, dict(zip(self._items, scores.tolist())), k)


# ============================================================================
# Prediction Store Builder
# ============================================================================

def build_predictions(
    recommender: Recommender,
    users: Sequence[Hashable],
    k: Optional[int] = None
) -> Tuple[PreferenceStore, List[Hashable]]:
    """
    Run a fitted recommender for every user and collect its output.

    Users are processed in sorted order. A RecommendationFailure drops that
    user only; any other exception propagates.

    Args:
        recommender: Fitted recommender
        users: Users to recommend for
        k: Recommendations per user (None for all)

    Returns:
        Tuple of (predictions store, users whose recommendation failed)
    """
    predictions = PreferenceStore()
    failed_users = []

    for user in sorted(users):
        try:
            recommendations = recommender.recommend(user, k)
        except RecommendationFailure as e:
            logger.warning(f"{recommender.name}: {e}")
            failed_users.append(user)
            continue
        for item, score in recommendations:
            predictions.add_preference(user, item, score)

    logger.info(
        f"{recommender.name}: predictions for {len(predictions.users())} users "
        f"({predictions.num_preferences()} scores, {len(failed_users)} failures)"
    )
    return predictions, failed_users
