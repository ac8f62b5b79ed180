"""
Evaluation Pipeline Module.

Orchestrates a full offline evaluation:
    split -> fit recommender per fold -> predictions -> candidate strategy
    -> metrics per fold -> fold-averaged results

- EvaluationPipeline: runs one recommender under one EvaluationConfig
- EvaluationResult: per-fold MetricResults plus fold-averaged summaries
- BatchEvaluator: compares several recommenders on the same folds

Per-user recommendation failures are caught and reported; configuration,
I/O and parse errors propagate.

Example:
    >>> from receval.evaluation import EvaluationPipeline, PopularityRecommender
    >>> pipeline = EvaluationPipeline(EvaluationConfig(cutoffs=[10]))
    >>> result = pipeline.run(store, PopularityRecommender())
    >>> print(f"P@10: {result.value_at('precision', 10):.4f}")
"""

from typing import Any, Dict, Hashable, List, Optional, Sequence
from dataclasses import dataclass, field
from datetime import datetime
import logging

import pandas as pd

from ..config import EvaluationConfig
from ..data.preference_store import PreferenceStore
from ..data.processing import (
    BaseSplitter,
    CrossValidationSplitter,
    Fold,
    RandomSplitter,
    TemporalSplitter,
)
from ..exceptions import UNDEFINED
from ..logging_utils import format_metrics, format_params
from .metrics import BaseMetric, MetricFactory, MetricResult, mean_defined
from .recommenders import Recommender, build_predictions
from .strategies import create_strategy

logger = logging.getLogger(__name__)


# ============================================================================
# Results
# ============================================================================

@dataclass(frozen=True)
class FoldResult:
    """Metric results and diagnostics of one fold."""
    index: int
    metrics: Dict[str, MetricResult]
    failed_users: List[Hashable] = field(default_factory=list)
    diagnostics: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EvaluationResult:
    """
    Results of an evaluation run across folds.

    Fold-level values are averaged over the folds where they are defined.
    """
    recommender_name: str
    config: EvaluationConfig
    folds: List[FoldResult]
    evaluation_time_seconds: float = 0.0

    @property
    def metric_names(self) -> List[str]:
        return list(self.folds[0].metrics) if self.folds else []

    def global_value(self, metric: str) -> float:
        return mean_defined(fold.metrics[metric].global_value for fold in self.folds)

    def value_at(self, metric: str, k: int) -> float:
        return mean_defined(fold.metrics[metric].value_at(k) for fold in self.folds)

    def per_cutoff(self, metric: str) -> Dict[int, float]:
        cutoffs = sorted({k for fold in self.folds for k in fold.metrics[metric].per_cutoff})
        return {k: self.value_at(metric, k) for k in cutoffs}

    def per_user(self, metric: str) -> Dict[Hashable, float]:
        """User -> value, averaged over the folds where the user is defined."""
        values: Dict[Hashable, List[float]] = {}
        for fold in self.folds:
            for user, value in fold.metrics[metric].per_user.items():
                values.setdefault(user, []).append(value)
        return {user: mean_defined(vals) for user, vals in values.items()}

    def failed_users(self) -> List[Hashable]:
        return sorted({user for fold in self.folds for user in fold.failed_users})

    def summary(self) -> Dict[str, float]:
        """Flat dict such as {'precision': .., 'precision@10': .., 'rmse': ..}."""
        summary = {}
        for metric in self.metric_names:
            summary[metric] = self.global_value(metric)
            for k, value in self.per_cutoff(metric).items():
                summary[f'{metric}@{k}'] = value
        return summary

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """{metric: {'global': .., 'per_cutoff': {k: ..}, 'per_user': {user: ..}}}"""
        return {
            metric: {
                'global': self.global_value(metric),
                'per_cutoff': self.per_cutoff(metric),
                'per_user': self.per_user(metric),
            }
            for metric in self.metric_names
        }


# ============================================================================
# Evaluation Pipeline
# ============================================================================

class EvaluationPipeline:
    """
    Offline evaluation of a recommender under one configuration.

    The configuration is validated at construction, so unknown strategy or
    metric names fail before any data is split.
    """

    def __init__(self, config: Optional[EvaluationConfig] = None):
        """
        Initialize pipeline.

        Args:
            config: Evaluation configuration (defaults if None)

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        self.config = (config or EvaluationConfig()).validate()
        self.metrics: Dict[str, BaseMetric] = MetricFactory.create_metrics(
            self.config.metrics,
            cutoffs=self.config.cutoffs,
            relevance_threshold=self.config.relevance_threshold,
        )
        self.splitter = self.build_splitter()

        logger.info(f"EvaluationPipeline initialized: {format_params(self.config.to_dict())}")

    def build_splitter(self) -> BaseSplitter:
        config = self.config
        if config.split_method == 'cross_validation':
            return CrossValidationSplitter(config.n_folds, config.per_user, config.seed)
        if config.split_method == 'temporal':
            return TemporalSplitter(config.test_fraction, config.per_user)
        return RandomSplitter(
            config.test_fraction,
            config.per_user,
            config.seed,
            keep_order=config.keep_order,
            n_repeats=config.n_folds,
        )

    def split(self, store: PreferenceStore) -> List[Fold]:
        return self.splitter.split(store)

    def evaluate_fold(
        self,
        train: PreferenceStore,
        test: PreferenceStore,
        predictions: PreferenceStore,
        index: int = 0,
        failed_users: Sequence[Hashable] = ()
    ) -> FoldResult:
        """
        Score externally produced predictions on one fold.

        Ranking metrics see only the strategy's candidate items; error
        metrics compare every test pair against the raw predictions.

        Args:
            train: Training preferences of the fold
            test: Test preferences of the fold
            predictions: Recommender output for the fold
            index: Fold number
            failed_users: Users whose recommendation failed

        Returns:
            FoldResult
        """
        strategy = create_strategy(
            self.config.strategy_name, train, test, self.config.relevance_threshold
        )
        filtered = strategy.filter_predictions(predictions)
        if predictions.num_preferences() and not filtered.num_preferences():
            logger.warning(
                f"Fold {index}: no prediction is a {strategy.name} candidate; ranking metrics "
                f"will be undefined (recommenders excluding seen items need exclude_seen=False "
                f"with train_items)"
            )

        results = {}
        for name, metric in self.metrics.items():
            if metric.uses_cutoffs:
                results[name] = metric.compute(filtered, test, strategy)
            else:
                results[name] = metric.compute(predictions, test)

        diagnostics = {
            'train_interactions': train.num_preferences(),
            'test_interactions': test.num_preferences(),
            'predicted_users': len(predictions.users()),
            'candidate_predictions': filtered.num_preferences(),
            'failed_users': len(failed_users),
        }
        logger.info(
            f"Fold {index}: " + format_metrics({name: r.global_value for name, r in results.items()})
        )
        return FoldResult(index=index, metrics=results, failed_users=list(failed_users),
                          diagnostics=diagnostics)

    def run(
        self,
        store: PreferenceStore,
        recommender: Recommender,
        num_recommendations: Optional[int] = None
    ) -> EvaluationResult:
        """
        Evaluate a recommender on every fold of `store`.

        Args:
            store: Full interaction data
            recommender: Recommender to fit on each training fold
            num_recommendations: Recommendations per user (None for all)

        Returns:
            EvaluationResult
        """
        start_time = datetime.now()
        logger.info(f"Evaluating {recommender.name} on {store!r}")

        fold_results = []
        for fold in self.split(store):
            recommender.fit(fold.train)
            predictions, failed = build_predictions(
                recommender, sorted(fold.test.users()), num_recommendations
            )
            fold_results.append(
                self.evaluate_fold(fold.train, fold.test, predictions, fold.index, failed)
            )

        result = EvaluationResult(
            recommender_name=recommender.name,
            config=self.config,
            folds=fold_results,
            evaluation_time_seconds=(datetime.now() - start_time).total_seconds(),
        )
        logger.info(f"Evaluation complete: {recommender.name} | {format_metrics(result.summary())}")
        return result


# ============================================================================
# Batch Evaluator
# ============================================================================

class BatchEvaluator:
    """
    Evaluate several recommenders on the same data and configuration.

    Example:
        >>> batch = BatchEvaluator(EvaluationConfig(cutoffs=[10]))
        >>> batch.add_recommender(PopularityRecommender())
        >>> batch.add_recommender(RandomRecommender(seed=7))
        >>> table = batch.evaluate_all(store)
    """

    def __init__(self, config: Optional[EvaluationConfig] = None):
        self.pipeline = EvaluationPipeline(config)
        self.recommenders: Dict[str, Recommender] = {}
        self.results: Dict[str, EvaluationResult] = {}

    def add_recommender(self, recommender: Recommender) -> None:
        self.recommenders[recommender.name] = recommender
        logger.info(f"Added recommender: {recommender.name}")

    def evaluate_all(self, store: PreferenceStore) -> pd.DataFrame:
        """Run every recommender; same seed, so all see identical folds."""
        for name, recommender in self.recommenders.items():
            self.results[name] = self.pipeline.run(store, recommender)
        return self.get_comparison_table()

    def get_comparison_table(self) -> pd.DataFrame:
        """One row per recommender, one column per metric (and cutoff)."""
        rows = []
        for name, result in self.results.items():
            row = {'recommender': name}
            row.update(result.summary())
            rows.append(row)
        if not rows:
            return pd.DataFrame()
        return pd.DataFrame(rows).set_index('recommender')

    def get_best_recommender(self, metric: str, higher_is_better: bool = True):
        """
        Name and value of the best recommender on a summary column.

        Undefined values never win. Returns (None, nan) if nothing is defined.
        """
        table = self.get_comparison_table()
        if table.empty or metric not in table.columns:
            return None, UNDEFINED
        column = table[metric].dropna()
        if column.empty:
            return None, UNDEFINED
        best = column.idxmax() if higher_is_better else column.idxmin()
        return best, float(column[best])


# ============================================================================
# Convenience Functions
# ============================================================================

def evaluate_recommender(
    store: PreferenceStore,
    recommender: Recommender,
    config: Optional[EvaluationConfig] = None
) -> EvaluationResult:
    """
    Convenience function for one evaluation run.

    Returns:
        EvaluationResult
    """
    return EvaluationPipeline(config).run(store, recommender)
