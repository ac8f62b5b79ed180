"""
Evaluation Core.

- strategies: candidate item selection per user
- ranking: per-user ranked relevance sequences
- metrics: Precision@K, Recall@K, NDCG@K, RMSE, MAE
- recommenders: recommender interface and baselines
- pipeline: split -> fit -> predict -> score orchestration

Example:
    >>> from receval.evaluation import MetricFactory, create_strategy
    >>> strategy = create_strategy('test_items', train, test)
    >>> ndcg = MetricFactory.create('ndcg', cutoffs=[10]).compute(predictions, test, strategy)
"""

from .strategies import (
    CandidateStrategy,
    TestItems,
    TrainItems,
    RelevantTestItems,
    AllItems,
    STRATEGY_REGISTRY,
    available_strategies,
    create_strategy,
)
from .ranking import BINARY, GRADED, RankedItem, RankingPreprocessor
from .metrics import (
    MetricResult,
    BaseMetric,
    RankingMetric,
    Precision,
    Recall,
    NDCG,
    ErrorMetric,
    RMSE,
    MAE,
    MetricFactory,
    precision_at_k,
    recall_at_k,
    ndcg_at_k,
    rmse,
    mae,
)
from .recommenders import (
    Recommender,
    PopularityRecommender,
    ItemAverageRecommender,
    RandomRecommender,
    build_predictions,
)
# pipeline imports receval.config, which needs the modules above
from .pipeline import (
    FoldResult,
    EvaluationResult,
    EvaluationPipeline,
    BatchEvaluator,
    evaluate_recommender,
)


__all__ = [
    'CandidateStrategy',
    'TestItems',
    'TrainItems',
    'RelevantTestItems',
    'AllItems',
    'STRATEGY_REGISTRY',
    'available_strategies',
    'create_strategy',
    'BINARY',
    'GRADED',
    'RankedItem',
    'RankingPreprocessor',
    'MetricResult',
    'BaseMetric',
    'RankingMetric',
    'Precision',
    'Recall',
    'NDCG',
    'ErrorMetric',
    'RMSE',
    'MAE',
    'MetricFactory',
    'precision_at_k',
    'recall_at_k',
    'ndcg_at_k',
    'rmse',
    'mae',
    'Recommender',
    'PopularityRecommender',
    'ItemAverageRecommender',
    'RandomRecommender',
    'build_predictions',
    'FoldResult',
    'EvaluationResult',
    'EvaluationPipeline',
    'BatchEvaluator',
    'evaluate_recommender',
]
