"""
receval: offline evaluation of recommender systems.

Load ratings into a PreferenceStore, split them into train/test folds,
choose the candidate items each user is ranked on, and score predictions
with Precision@K, Recall@K, NDCG@K, RMSE and MAE.

Example:
    >>> from receval import MovielensParser, EvaluationConfig, EvaluationPipeline
    >>> from receval import PopularityRecommender
    >>> store = MovielensParser().parse('data/ml-100k/u.data')
    >>> config = EvaluationConfig(cutoffs=[10], relevance_threshold=4.0)
    >>> result = EvaluationPipeline(config).run(store, PopularityRecommender())
    >>> result.summary()
"""

__version__ = '0.1.0'

from .exceptions import (
    UNDEFINED,
    is_undefined,
    EvaluationError,
    ConfigurationError,
    IOFailure,
    ParseFailure,
    RecommendationFailure,
    InsufficientDataWarning,
)
from .data import (
    PreferenceStore,
    DelimitedParser,
    SimpleParser,
    MovielensParser,
    Fold,
    RandomSplitter,
    CrossValidationSplitter,
    TemporalSplitter,
)
# evaluation must load before config
from .evaluation import (
    create_strategy,
    RankingPreprocessor,
    MetricResult,
    MetricFactory,
    Precision,
    Recall,
    NDCG,
    RMSE,
    MAE,
    PopularityRecommender,
    ItemAverageRecommender,
    RandomRecommender,
    EvaluationPipeline,
    EvaluationResult,
    BatchEvaluator,
    evaluate_recommender,
)
from .config import EvaluationConfig


__all__ = [
    'UNDEFINED',
    'is_undefined',
    'EvaluationError',
    'ConfigurationError',
    'IOFailure',
    'ParseFailure',
    'RecommendationFailure',
    'InsufficientDataWarning',
    'PreferenceStore',
    'DelimitedParser',
    'SimpleParser',
    'MovielensParser',
    'Fold',
    'RandomSplitter',
    'CrossValidationSplitter',
    'TemporalSplitter',
    'create_strategy',
    'RankingPreprocessor',
    'MetricResult',
    'MetricFactory',
    'Precision',
    'Recall',
    'NDCG',
    'RMSE',
    'MAE',
    'PopularityRecommender',
    'ItemAverageRecommender',
    'RandomRecommender',
    'EvaluationPipeline',
    'EvaluationResult',
    'BatchEvaluator',
    'evaluate_recommender',
    'EvaluationConfig',
]
