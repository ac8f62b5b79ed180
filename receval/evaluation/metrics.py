"""
Core Metrics Module for Offline Recommender Evaluation.

This module provides the evaluation metrics:
- Precision@K (binary relevance)
- Recall@K (binary relevance)
- NDCG@K (graded relevance)
- RMSE and MAE (error metrics with coverage diagnostics)

Every metric is a pure computation: compute(predictions, test, strategy)
returns an immutable MetricResult and leaves no state on the metric object,
so a metric instance can be reused across folds.

Undefined values (empty candidate lists, zero IDCG, nothing compared) are
NaN and are excluded from every average; they are never counted as 0.

Example:
    >>> from receval.evaluation import Precision, NDCG, RMSE
    >>> result = Precision(cutoffs=[5, 10], relevance_threshold=3.0).compute(predictions, test)
    >>> print(f"P@10: {result.value_at(10):.3f}")
    >>> rmse = RMSE().compute(predictions, test)
    >>> rmse.global_value, rmse.diagnostics['empty_items']
"""

from typing import Any, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import numpy as np
import logging

from ..data.preference_store import PreferenceStore
from ..exceptions import ConfigurationError, UNDEFINED, is_undefined
from .ranking import BINARY, GRADED, RankedItem, RankingPreprocessor
from .strategies import CandidateStrategy

logger = logging.getLogger(__name__)


CutoffResult = Dict[int, Dict[Hashable, float]]


# ============================================================================
# Helpers
# ============================================================================

def validate_cutoffs(cutoffs: Optional[Iterable[int]]) -> Tuple[int, ...]:
    """
    Normalize cutoffs to a sorted tuple of unique positive integers.

    Raises:
        ConfigurationError: If a cutoff is not a positive integer
    """
    if cutoffs is None:
        return ()
    result = set()
    for k in cutoffs:
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k <= 0:
            raise ConfigurationError(f"Cutoffs must be positive integers, got {k!r}")
        result.add(int(k))
    return tuple(sorted(result))


def mean_defined(values: Iterable[float]) -> float:
    """Arithmetic mean over non-NaN values; NaN if there are none."""
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return UNDEFINED
    mask = ~np.isnan(arr)
    if not mask.any():
        return UNDEFINED
    return float(arr[mask].mean())


def count_defined(values: Iterable[float]) -> int:
    return sum(1 for v in values if not is_undefined(v))


# ============================================================================
# Result
# ============================================================================

@dataclass(frozen=True)
class MetricResult:
    """
    Outcome of one metric computation.

    Attributes:
        name: Metric name ('precision', 'ndcg', 'rmse', ...)
        global_value: Global scalar (NaN if undefined)
        per_cutoff: Cutoff k -> global value at k
        per_user: User -> value over the whole list (or all compared pairs)
        per_user_at_cutoff: Cutoff k -> (user -> value at k)
        diagnostics: Coverage counters and user counts
    """
    name: str
    global_value: float
    per_cutoff: Dict[int, float] = field(default_factory=dict)
    per_user: Dict[Hashable, float] = field(default_factory=dict)
    per_user_at_cutoff: CutoffResult = field(default_factory=dict)
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    def value_at(self, k: int, user: Optional[Hashable] = None) -> float:
        """Global value at cutoff k, or one user's value when user is given."""
        if user is None:
            return self.per_cutoff.get(k, UNDEFINED)
        return self.per_user_at_cutoff.get(k, {}).get(user, UNDEFINED)

    def user_value(self, user: Hashable) -> float:
        return self.per_user.get(user, UNDEFINED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'global': self.global_value,
            'per_cutoff': dict(self.per_cutoff),
            'per_user': dict(self.per_user),
        }


# ============================================================================
# Abstract Base Metric
# ============================================================================

class BaseMetric(ABC):
    """
    Abstract base class for all evaluation metrics.
    """

    uses_cutoffs = False

    def __init__(self, name: str):
        """
        Initialize base metric.

        Args:
            name: Metric name
        """
        self.name = name

    @abstractmethod
    def compute(
        self,
        predictions: PreferenceStore,
        test: PreferenceStore,
        strategy: Optional[CandidateStrategy] = None
    ) -> MetricResult:
        """
        Compute the metric.

        Args:
            predictions: Predicted scores/ratings
            test: Ground-truth ratings
            strategy: Candidate strategy restricting the ranked items

        Returns:
            MetricResult
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


# ============================================================================
# Ranking Metrics
# ============================================================================

class RankingMetric(BaseMetric):
    """
    Base class for metrics computed on per-user relevance sequences.

    Subclasses implement _user_values(), returning the user's value over the
    whole list and its value at each cutoff.
    """

    uses_cutoffs = True
    relevance = BINARY

    def __init__(
        self,
        name: str,
        cutoffs: Optional[Sequence[int]] = None,
        relevance_threshold: float = 1.0
    ):
        """
        Args:
            name: Metric name
            cutoffs: Cutoff levels (positive integers)
            relevance_threshold: Minimum test rating for binary relevance

        Raises:
            ConfigurationError: If a cutoff is not a positive integer
        """
        super().__init__(name)
        self.cutoffs = validate_cutoffs(cutoffs)
        self.relevance_threshold = relevance_threshold
        self.preprocessor = RankingPreprocessor(relevance=self.relevance, threshold=relevance_threshold)

    def compute(
        self,
        predictions: PreferenceStore,
        test: PreferenceStore,
        strategy: Optional[CandidateStrategy] = None
    ) -> MetricResult:
        sequences = self.preprocessor.build(predictions, test, strategy)

        per_user: Dict[Hashable, float] = {}
        per_user_at_cutoff: CutoffResult = {k: {} for k in self.cutoffs}

        for user, sequence in sequences.items():
            whole, at_cutoff = self._user_values(user, sequence, test)
            per_user[user] = whole
            for k in self.cutoffs:
                per_user_at_cutoff[k][user] = at_cutoff[k]

        per_cutoff = {k: mean_defined(per_user_at_cutoff[k].values()) for k in self.cutoffs}
        global_value = mean_defined(per_user.values())

        diagnostics = {
            'num_users': len(sequences),
            'users_evaluated': count_defined(per_user.values()),
            'users_without_candidates': sum(1 for seq in sequences.values() if not seq),
        }

        logger.info(
            f"{self.name}: {global_value:.4f} over {diagnostics['users_evaluated']}/"
            f"{diagnostics['num_users']} users"
            + "".join(f", @{k}={v:.4f}" for k, v in per_cutoff.items())
        )

        return MetricResult(
            name=self.name,
            global_value=global_value,
            per_cutoff=per_cutoff,
            per_user=per_user,
            per_user_at_cutoff=per_user_at_cutoff,
            diagnostics=diagnostics,
        )

    @abstractmethod
    def _user_values(
        self,
        user: Hashable,
        sequence: List[RankedItem],
        test: PreferenceStore
    ) -> Tuple[float, Dict[int, float]]:
        pass

    def _undefined(self) -> Tuple[float, Dict[int, float]]:
        return UNDEFINED, {k: UNDEFINED for k in self.cutoffs}

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(cutoffs={list(self.cutoffs)}, "
            f"relevance_threshold={self.relevance_threshold})"
        )


class Precision(RankingMetric):
    """
    Precision@K: fraction of relevant items among the top K.

    Formula:
        Precision@K = |relevant in top-K| / K

    A list shorter than K is scored over its own length (not padded with
    non-relevant items). Empty lists are undefined.
    """

    def __init__(self, cutoffs: Optional[Sequence[int]] = None, relevance_threshold: float = 1.0):
        super().__init__('precision', cutoffs, relevance_threshold)

    def _user_values(self, user, sequence, test):
        n = len(sequence)
        if n == 0:
            return self._undefined()

        hits = np.cumsum([entry.relevance for entry in sequence])
        at_cutoff = {}
        for k in self.cutoffs:
            if n >= k:
                at_cutoff[k] = float(hits[k - 1] / k)
            else:
                at_cutoff[k] = float(hits[-1] / n)
        return float(hits[-1] / n), at_cutoff


class Recall(RankingMetric):
    """
    Recall@K: fraction of the user's relevant test items found in the top K.

    Formula:
        Recall@K = |relevant in top-K| / |relevant test items|

    Users with no relevant test item, or with an empty list, are undefined.
    """

    def __init__(self, cutoffs: Optional[Sequence[int]] = None, relevance_threshold: float = 1.0):
        super().__init__('recall', cutoffs, relevance_threshold)

    def _user_values(self, user, sequence, test):
        num_relevant = sum(
            1 for value in test.user_preferences(user).values()
            if value >= self.relevance_threshold
        )
        n = len(sequence)
        if n == 0 or num_relevant == 0:
            return self._undefined()

        hits = np.cumsum([entry.relevance for entry in sequence])
        at_cutoff = {k: float(hits[min(k, n) - 1] / num_relevant) for k in self.cutoffs}
        return float(hits[-1] / num_relevant), at_cutoff


class NDCG(RankingMetric):
    """
    NDCG@K (Normalized Discounted Cumulative Gain) with graded relevance.

    Formula:
        DCG@K = Σ(i=1 to min(K, n)) [gain(rel_i) / log2(i+1)]
        IDCG@K = DCG@K of the user's test ratings sorted descending
        NDCG@K = DCG@K / IDCG@K

    Gain is the rating itself ('linear') or 2^rating - 1 ('exponential').
    IDCG@K = 0 (nothing relevant in test) or an empty list is undefined.
    """

    relevance = GRADED
    GAIN_TYPES = ('linear', 'exponential')

    def __init__(
        self,
        cutoffs: Optional[Sequence[int]] = None,
        relevance_threshold: float = 1.0,
        gain: str = 'linear'
    ):
        if gain not in self.GAIN_TYPES:
            raise ConfigurationError(f"Unknown gain type: {gain}. Available: {list(self.GAIN_TYPES)}")
        super().__init__('ndcg', cutoffs, relevance_threshold)
        self.gain = gain

    def _gains(self, relevances: Sequence[float]) -> np.ndarray:
        rels = np.asarray(relevances, dtype=float)
        if self.gain == 'exponential':
            return np.power(2.0, rels) - 1.0
        return rels

    @staticmethod
    def _dcg(gains: np.ndarray) -> float:
        if len(gains) == 0:
            return 0.0
        # Position discounting: log2(i+1) for rank i=1,2,...
        discounts = np.log2(np.arange(len(gains)) + 2)
        return float(np.sum(gains / discounts))

    def _ratio(self, gains: np.ndarray, ideal: np.ndarray, k: Optional[int] = None) -> float:
        if k is not None:
            gains, ideal = gains[:k], ideal[:k]
        idcg = self._dcg(ideal)
        if idcg <= 0:
            return UNDEFINED
        return self._dcg(gains) / idcg

    def _user_values(self, user, sequence, test):
        if not sequence:
            return self._undefined()

        gains = self._gains([entry.relevance for entry in sequence])
        ideal = self._gains(sorted(test.user_preferences(user).values(), reverse=True))

        at_cutoff = {k: self._ratio(gains, ideal, k) for k in self.cutoffs}
        return self._ratio(gains, ideal), at_cutoff

    def __repr__(self) -> str:
        return f"NDCG(cutoffs={list(self.cutoffs)}, gain='{self.gain}')"


# ============================================================================
# Error Metrics
# ============================================================================

class ErrorMetric(BaseMetric):
    """
    Base class for rating-prediction error metrics.

    Walks every (user, item) pair of the test store and looks the pair up in
    the predictions store:
    - user missing from predictions: all its pairs skipped, counted in
      diagnostics['empty_users']
    - item missing for a present user: pair skipped, counted in
      diagnostics['empty_items']

    The strategy argument is accepted for interface symmetry and ignored:
    every test pair is a comparison candidate.
    """

    def compute(
        self,
        predictions: PreferenceStore,
        test: PreferenceStore,
        strategy: Optional[CandidateStrategy] = None
    ) -> MetricResult:
        predicted = predictions.preferences()
        empty_users = 0
        empty_items = 0
        per_user: Dict[Hashable, float] = {}
        all_errors: List[float] = []

        for user in sorted(test.users()):
            user_test = test.user_preferences(user)
            if user not in predicted:
                empty_users += len(user_test)
                per_user[user] = UNDEFINED
                continue

            user_preds = predicted[user]
            errors = []
            for item in sorted(user_test):
                if item not in user_preds:
                    empty_items += 1
                    continue
                errors.append(user_test[item] - user_preds[item])

            per_user[user] = self._aggregate(errors)
            all_errors.extend(errors)

        global_value = self._aggregate(all_errors)
        diagnostics = {
            'compared': len(all_errors),
            'empty_users': empty_users,
            'empty_items': empty_items,
            'num_users': len(per_user),
            'users_evaluated': count_defined(per_user.values()),
        }

        if empty_users or empty_items:
            logger.warning(
                f"{self.name}: skipped {empty_users} pairs of users without predictions "
                f"and {empty_items} pairs of items without predictions"
            )
        logger.info(f"{self.name}: {global_value:.4f} over {len(all_errors)} pairs")

        return MetricResult(
            name=self.name,
            global_value=global_value,
            per_user=per_user,
            diagnostics=diagnostics,
        )

    @abstractmethod
    def _aggregate(self, errors: Sequence[float]) -> float:
        """Aggregate signed errors (test - predicted); NaN when empty."""
        pass


class RMSE(ErrorMetric):
    """
    Root Mean Squared Error.

    Formula:
        RMSE = sqrt(Σ (test - predicted)^2 / compared pairs)
    """

    def __init__(self):
        super().__init__(name='rmse')

    def _aggregate(self, errors):
        if len(errors) == 0:
            return UNDEFINED
        arr = np.asarray(errors, dtype=float)
        return float(np.sqrt(np.mean(arr * arr)))


class MAE(ErrorMetric):
    """
    Mean Absolute Error.

    Formula:
        MAE = Σ |test - predicted| / compared pairs
    """

    def __init__(self):
        super().__init__(name='mae')

    def _aggregate(self, errors):
        if len(errors) == 0:
            return UNDEFINED
        return float(np.mean(np.abs(np.asarray(errors, dtype=float))))


# ============================================================================
# Metric Factory
# ============================================================================

class MetricFactory:
    """
    Factory for creating metric instances.

    Example:
        >>> precision = MetricFactory.create('precision', cutoffs=[10], relevance_threshold=3.0)
        >>> rmse = MetricFactory.create('rmse')
    """

    METRIC_REGISTRY = {
        'precision': Precision,
        'recall': Recall,
        'ndcg': NDCG,
        'rmse': RMSE,
        'mae': MAE,
    }

    @classmethod
    def available(cls) -> List[str]:
        return sorted(cls.METRIC_REGISTRY)

    @classmethod
    def validate_name(cls, metric_name: str) -> str:
        key = str(metric_name).strip().lower()
        if key not in cls.METRIC_REGISTRY:
            raise ConfigurationError(
                f"Unknown metric: {metric_name}. Available: {cls.available()}"
            )
        return key

    @classmethod
    def create(
        cls,
        metric_name: str,
        cutoffs: Optional[Sequence[int]] = None,
        relevance_threshold: float = 1.0,
        **kwargs
    ) -> BaseMetric:
        """
        Create a metric instance.

        Args:
            metric_name: Name of metric ('precision', 'ndcg', 'rmse', ...)
            cutoffs: Cutoff levels (ranking metrics only)
            relevance_threshold: Relevance threshold (ranking metrics only)
            **kwargs: Extra metric-specific parameters (e.g., gain='exponential')

        Returns:
            BaseMetric instance

        Raises:
            ConfigurationError: If the metric name is not recognized
        """
        metric_cls = cls.METRIC_REGISTRY[cls.validate_name(metric_name)]
        if metric_cls.uses_cutoffs:
            return metric_cls(cutoffs=cutoffs, relevance_threshold=relevance_threshold, **kwargs)
        return metric_cls(**kwargs)

    @classmethod
    def create_metrics(
        cls,
        metric_names: Sequence[str],
        cutoffs: Optional[Sequence[int]] = None,
        relevance_threshold: float = 1.0
    ) -> Dict[str, BaseMetric]:
        """
        Create a set of metrics sharing cutoffs and threshold.

        Returns:
            Dict mapping metric name to metric instance
        """
        metrics = {}
        for metric_name in metric_names:
            metric = cls.create(metric_name, cutoffs=cutoffs, relevance_threshold=relevance_threshold)
            metrics[metric.name] = metric
        return metrics


# ============================================================================
# Convenience Functions
# ============================================================================

def precision_at_k(
    predictions: PreferenceStore,
    test: PreferenceStore,
    k: int,
    relevance_threshold: float = 1.0,
    strategy: Optional[CandidateStrategy] = None
) -> float:
    """
    Compute global Precision@K.

    Returns:
        Precision@K averaged over users with a defined value (NaN if none)
    """
    return Precision([k], relevance_threshold).compute(predictions, test, strategy).value_at(k)


def recall_at_k(
    predictions: PreferenceStore,
    test: PreferenceStore,
    k: int,
    relevance_threshold: float = 1.0,
    strategy: Optional[CandidateStrategy] = None
) -> float:
    """Compute global Recall@K."""
    return Recall([k], relevance_threshold).compute(predictions, test, strategy).value_at(k)


def ndcg_at_k(
    predictions: PreferenceStore,
    test: PreferenceStore,
    k: int,
    strategy: Optional[CandidateStrategy] = None
) -> float:
    """Compute global NDCG@K."""
    return NDCG([k]).compute(predictions, test, strategy).value_at(k)


def rmse(predictions: PreferenceStore, test: PreferenceStore) -> float:
    """Compute global RMSE (NaN if no pair could be compared)."""
    return RMSE().compute(predictions, test).global_value


def mae(predictions: PreferenceStore, test: PreferenceStore) -> float:
    """Compute global MAE (NaN if no pair could be compared)."""
    return MAE().compute(predictions, test).global_value
