"""
Candidate Selection Strategies.

A strategy decides, per user, which items a ranking is evaluated over.
Every strategy is built from a fixed (train, test, relevance_threshold)
context and answers candidate_items(user).

Strategies:
- test_items: the user's test items
- train_items: the user's training items
- relevant_test_items: test items rated >= relevance_threshold
- all_items: every item in train or test the user has not rated in train

Example:
    >>> strategy = create_strategy('test_items', train, test, relevance_threshold=3.0)
    >>> strategy.candidate_items(user)
    >>> filtered = strategy.filter_predictions(predictions)
"""

from abc import ABC, abstractmethod
from typing import Dict, Hashable, List, Set, Type
import logging

from ..data.preference_store import PreferenceStore
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# ============================================================================
# Abstract Strategy
# ============================================================================

class CandidateStrategy(ABC):
    """
    Abstract base class for candidate selection strategies.
    """

    name = 'base'

    def __init__(
        self,
        train: PreferenceStore,
        test: PreferenceStore,
        relevance_threshold: float = 0.0
    ):
        """
        Initialize strategy.

        Args:
            train: Training preferences
            test: Test preferences
            relevance_threshold: Minimum test rating counted as relevant
        """
        self.train = train
        self.test = test
        self.relevance_threshold = relevance_threshold

    @abstractmethod
    def candidate_items(self, user: Hashable) -> Set[Hashable]:
        """
        Items the user's ranking is evaluated over.

        Args:
            user: User id (unknown users get an empty set)

        Returns:
            Set of item ids
        """
        pass

    def filter_predictions(self, predictions: PreferenceStore) -> PreferenceStore:
        """
        Keep only each user's predicted scores on its candidate items.

        Args:
            predictions: Recommender output (not modified)

        Returns:
            New PreferenceStore with the filtered predictions
        """
        filtered = PreferenceStore()
        dropped_users = 0
        for user in sorted(predictions.users()):
            user_preds = predictions.user_preferences(user)
            candidates = self.candidate_items(user)
            kept = 0
            for item in sorted(candidates & user_preds.keys()):
                filtered.add_preference(user, item, user_preds[item])
                kept += 1
            if kept == 0:
                dropped_users += 1

        logger.info(
            f"{self.name}: kept {filtered.num_preferences()} of "
            f"{predictions.num_preferences()} predictions ({dropped_users} users without candidates)"
        )
        return filtered

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(relevance_threshold={self.relevance_threshold})"


# ============================================================================
# Strategies
# ============================================================================

class TestItems(CandidateStrategy):
    """Exactly the items present in the user's test preferences."""

    name = 'test_items'

    def candidate_items(self, user: Hashable) -> Set[Hashable]:
        return set(self.test.user_preferences(user))


class TrainItems(CandidateStrategy):
    """Items present in the user's training preferences."""

    name = 'train_items'

    def candidate_items(self, user: Hashable) -> Set[Hashable]:
        return set(self.train.user_preferences(user))


class RelevantTestItems(CandidateStrategy):
    """Test items whose preference is at least the relevance threshold."""

    name = 'relevant_test_items'

    def candidate_items(self, user: Hashable) -> Set[Hashable]:
        return {
            item for item, value in self.test.user_preferences(user).items()
            if value >= self.relevance_threshold
        }


class AllItems(CandidateStrategy):
    """Every known item (train or test) the user has not rated in train."""

    name = 'all_items'

    def __init__(self, train, test, relevance_threshold=0.0):
        super().__init__(train, test, relevance_threshold)
        self._all_items = train.items() | test.items()

    def candidate_items(self, user: Hashable) -> Set[Hashable]:
        if user not in self.train.preferences() and user not in self.test.preferences():
            return set()
        return self._all_items - set(self.train.user_preferences(user))


# ============================================================================
# Strategy Registry
# ============================================================================

STRATEGY_REGISTRY: Dict[str, Type[CandidateStrategy]] = {
    TestItems.name: TestItems,
    TrainItems.name: TrainItems,
    RelevantTestItems.name: RelevantTestItems,
    AllItems.name: AllItems,
}


def available_strategies() -> List[str]:
    return sorted(STRATEGY_REGISTRY)


def validate_strategy_name(name: str) -> str:
    """
    Normalize a strategy name and check it is registered.

    Raises:
        ConfigurationError: If the name is unknown
    """
    key = str(name).strip().lower()
    if key not in STRATEGY_REGISTRY:
        raise ConfigurationError(
            f"Unknown strategy: {name}. Available: {available_strategies()}"
        )
    return key


def create_strategy(
    name: str,
    train: PreferenceStore,
    test: PreferenceStore,
    relevance_threshold: float = 0.0
) -> CandidateStrategy:
    """
    Create a strategy instance by registered name.

    Args:
        name: Strategy name ('test_items', 'train_items', ...)
        train: Training preferences
        test: Test preferences
        relevance_threshold: Relevance threshold

    Returns:
        CandidateStrategy instance

    Raises:
        ConfigurationError: If the name is unknown
    """
    key = validate_strategy_name(name)
    return STRATEGY_REGISTRY[key](train, test, relevance_threshold)
