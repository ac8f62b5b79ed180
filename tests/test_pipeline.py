"""
Tests for the evaluation pipeline and batch comparison
"""
import logging
import math

import pandas as pd
import pytest

from receval.config import EvaluationConfig
from receval.data import PreferenceStore
from receval.evaluation import (
    BatchEvaluator,
    EvaluationPipeline,
    ItemAverageRecommender,
    PopularityRecommender,
    RandomRecommender,
    evaluate_recommender,
)
from receval.exceptions import ConfigurationError, RecommendationFailure


class FailsForUserTwo(PopularityRecommender):

    def recommend(self, user, k=None):
        if user == 2:
            raise RecommendationFailure(user, 'cold user')
        return super().recommend(user, k)


def test_evaluate_fold_scenario(scenario_store):
    config = EvaluationConfig(cutoffs=[1], relevance_threshold=3.0)
    fold = EvaluationPipeline(config).evaluate_fold(PreferenceStore(), scenario_store,
                                                     scenario_store.copy())

    assert fold.metrics['rmse'].global_value == 0.0
    assert fold.metrics['precision'].value_at(1) == 1.0
    assert fold.metrics['ndcg'].value_at(1) == pytest.approx(1.0)
    assert fold.diagnostics['test_interactions'] == 3


def test_run_single_fold(ratings_store):
    result = EvaluationPipeline().run(ratings_store, PopularityRecommender())

    assert result.recommender_name == 'popularity'
    assert len(result.folds) == 1
    assert result.metric_names == ['precision', 'ndcg', 'rmse']
    for k in (5, 10):
        value = result.value_at('precision', k)
        assert math.isnan(value) or 0.0 <= value <= 1.0

    summary = result.summary()
    assert {'precision', 'precision@5', 'precision@10', 'ndcg@5', 'rmse'} <= set(summary)


def test_run_is_deterministic(ratings_store):
    config = EvaluationConfig(n_folds=2, seed=13, metrics=['precision', 'recall'])
    first = EvaluationPipeline(config).run(ratings_store, RandomRecommender(seed=1))
    second = EvaluationPipeline(config).run(ratings_store, RandomRecommender(seed=1))

    assert pd.Series(first.summary()).equals(pd.Series(second.summary()))
    assert pd.Series(first.per_user('recall')).equals(pd.Series(second.per_user('recall')))


def test_error_metric_coverage_adds_up(ratings_store):
    config = EvaluationConfig(split_method='temporal', metrics=['rmse', 'mae'])
    result = EvaluationPipeline(config).run(ratings_store, ItemAverageRecommender())

    fold = result.folds[0]
    diagnostics = fold.metrics['rmse'].diagnostics
    covered = diagnostics['compared'] + diagnostics['empty_users'] + diagnostics['empty_items']
    assert covered == fold.diagnostics['test_interactions']


def test_cross_validation_folds(ratings_store):
    config = EvaluationConfig(split_method='cross_validation', n_folds=3)
    pipeline = EvaluationPipeline(config)
    result = pipeline.run(ratings_store, PopularityRecommender())

    assert [fold.index for fold in result.folds] == [0, 1, 2]
    tested = sum(fold.diagnostics['test_interactions'] for fold in result.folds)
    assert tested == ratings_store.num_preferences()


def test_failed_users_are_reported(ratings_store):
    config = EvaluationConfig(test_fraction=0.5)
    result = EvaluationPipeline(config).run(ratings_store, FailsForUserTwo())

    assert result.failed_users() == [2]
    assert result.folds[0].diagnostics['failed_users'] == 1
    assert math.isnan(result.per_user('precision')[2])
    assert result.folds[0].metrics['rmse'].diagnostics['empty_users'] > 0


def test_result_to_dict_shape(ratings_store):
    result = evaluate_recommender(ratings_store, PopularityRecommender(),
                                  EvaluationConfig(cutoffs=[3]))
    data = result.to_dict()

    assert set(data) == {'precision', 'ndcg', 'rmse'}
    assert set(data['precision']) == {'global', 'per_cutoff', 'per_user'}
    assert list(data['ndcg']['per_cutoff']) == [3]
    assert data['rmse']['per_cutoff'] == {}


def test_invalid_config_fails_before_running():
    with pytest.raises(ConfigurationError):
        EvaluationPipeline(EvaluationConfig(strategy_name='unknown'))


def test_splitter_follows_config():
    pipeline = EvaluationPipeline(EvaluationConfig(split_method='temporal', test_fraction=0.1))
    assert pipeline.splitter.name == 'temporal'
    assert pipeline.splitter.test_fraction == 0.1

    pipeline = EvaluationPipeline(EvaluationConfig(n_folds=4))
    assert pipeline.splitter.n_repeats == 4


def test_batch_comparison_table(ratings_store):
    batch = BatchEvaluator(EvaluationConfig(cutoffs=[5]))
    batch.add_recommender(PopularityRecommender())
    batch.add_recommender(RandomRecommender(seed=5))
    table = batch.evaluate_all(ratings_store)

    assert isinstance(table, pd.DataFrame)
    assert list(table.index) == ['popularity', 'random']
    assert {'precision', 'precision@5', 'ndcg@5', 'rmse'} <= set(table.columns)

    best, value = batch.get_best_recommender('precision@5')
    assert best is None or best in table.index

    best, value = batch.get_best_recommender('map@5')
    assert best is None
    assert math.isnan(value)


def test_empty_batch():
    assert BatchEvaluator().get_comparison_table().empty


def test_warns_when_strategy_leaves_no_candidates(ratings_store, caplog):
    config = EvaluationConfig(strategy_name='train_items', test_fraction=0.5,
                              metrics=['precision'])
    with caplog.at_level(logging.WARNING, logger='receval.evaluation.pipeline'):
        result = EvaluationPipeline(config).run(ratings_store, PopularityRecommender())

    assert math.isnan(result.global_value('precision'))
    assert 'no prediction is a train_items candidate' in caplog.text


def test_train_items_with_seen_items_included(ratings_store):
    config = EvaluationConfig(strategy_name='train_items', test_fraction=0.5,
                              metrics=['precision'])
    result = EvaluationPipeline(config).run(ratings_store,
                                            PopularityRecommender(exclude_seen=False))

    # training items are never in test, so nothing is relevant
    assert result.global_value('precision') == 0.0
