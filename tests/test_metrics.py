"""
Tests for Precision, Recall, NDCG, RMSE and MAE
"""
import math

import numpy as np
import pytest

from receval.evaluation import (
    MAE,
    NDCG,
    RMSE,
    MetricFactory,
    Precision,
    Recall,
    mae,
    ndcg_at_k,
    precision_at_k,
    rmse,
)
from receval.evaluation import strategies
from receval.evaluation.metrics import mean_defined, validate_cutoffs
from receval.exceptions import ConfigurationError
from receval.data import PreferenceStore

from .conftest import make_store


# ============================================================================
# Reference scenario
# ============================================================================

def test_perfect_predictions_scenario(scenario_store):
    predictions = scenario_store.copy()

    assert rmse(predictions, scenario_store) == 0.0
    assert precision_at_k(predictions, scenario_store, 1, relevance_threshold=3.0) == 1.0

    ndcg = NDCG(cutoffs=[1], relevance_threshold=3.0).compute(predictions, scenario_store)
    assert ndcg.value_at(1, 'u1') == pytest.approx(1.0)
    assert ndcg.value_at(1, 'u2') == pytest.approx(1.0)
    assert ndcg.value_at(1) == pytest.approx(1.0)


def test_metrics_are_pure(scenario_store):
    metric = Precision(cutoffs=[1, 2], relevance_threshold=3.0)
    first = metric.compute(scenario_store, scenario_store)
    second = metric.compute(scenario_store, scenario_store)
    assert first == second


# ============================================================================
# Precision / Recall
# ============================================================================

def test_precision_bounds(ratings_store):
    rng = np.random.default_rng(0)
    predictions = PreferenceStore()
    for user, item, _ in ratings_store.triples():
        predictions.add_preference(user, item, float(rng.random()))

    result = Precision(cutoffs=[1, 3, 5, 20], relevance_threshold=3.0).compute(predictions, ratings_store)
    for k in result.per_cutoff:
        for value in result.per_user_at_cutoff[k].values():
            assert 0.0 <= value <= 1.0
        assert 0.0 <= result.value_at(k) <= 1.0


def test_precision_short_list_not_padded():
    predictions = make_store({1: {'a': 0.9, 'b': 0.5}})
    test = make_store({1: {'a': 4.0, 'c': 5.0}})

    result = Precision(cutoffs=[1, 5], relevance_threshold=3.0).compute(predictions, test)
    assert result.value_at(1) == 1.0
    assert result.value_at(5) == 0.5
    assert result.global_value == 0.5


def test_precision_empty_list_is_undefined():
    predictions = make_store({1: {'a': 0.9}})
    test = make_store({1: {'a': 4.0}, 2: {'a': 5.0}})

    result = Precision(cutoffs=[1], relevance_threshold=3.0).compute(predictions, test)
    assert math.isnan(result.value_at(1, 2))
    assert result.value_at(1) == 1.0
    assert result.diagnostics['users_without_candidates'] == 1
    assert result.diagnostics['users_evaluated'] == 1


def test_precision_ignores_users_without_test_data():
    predictions = make_store({'u1': {'i1': 5.0}, 'u9': {'i1': 1.0, 'i2': 1.0}})
    test = make_store({'u1': {'i1': 5.0}})

    result = Precision(cutoffs=[1], relevance_threshold=3.0).compute(predictions, test)
    assert result.per_user_at_cutoff[1] == {'u1': 1.0}
    assert result.value_at(1) == 1.0


def test_precision_with_strategy():
    train = make_store({1: {'x': 5.0}})
    test = make_store({1: {'a': 4.0, 'b': 1.0}})
    predictions = make_store({1: {'z': 0.99, 'b': 0.9, 'a': 0.8}})

    value = precision_at_k(predictions, test, 1, relevance_threshold=3.0,
                           strategy=strategies.TestItems(train, test))
    assert value == 0.0


def test_recall():
    predictions = make_store({1: {'a': 0.9, 'b': 0.8, 'c': 0.1}, 2: {'a': 0.5}})
    test = make_store({1: {'a': 1.0, 'c': 4.0, 'd': 5.0}, 2: {'a': 2.0}})

    result = Recall(cutoffs=[2, 3], relevance_threshold=3.0).compute(predictions, test)
    assert result.value_at(2, 1) == 0.0
    assert result.value_at(3, 1) == 0.5
    # user 2 has no relevant test item
    assert math.isnan(result.user_value(2))
    assert result.value_at(3) == 0.5


# ============================================================================
# NDCG
# ============================================================================

def test_ndcg_ideal_order_is_one(ratings_store):
    result = NDCG(cutoffs=[1, 3, 10]).compute(ratings_store, ratings_store)
    for k in (1, 3, 10):
        for value in result.per_user_at_cutoff[k].values():
            assert value == pytest.approx(1.0)


def test_ndcg_known_value():
    predictions = make_store({1: {'i1': 0.1, 'i2': 0.9}})
    test = make_store({1: {'i1': 5.0, 'i2': 3.0}})

    result = NDCG(cutoffs=[1, 2]).compute(predictions, test)
    dcg = 3.0 + 5.0 / math.log2(3)
    idcg = 5.0 + 3.0 / math.log2(3)
    assert result.value_at(1) == pytest.approx(0.6)
    assert result.value_at(2) == pytest.approx(dcg / idcg)


def test_ndcg_exponential_gain():
    predictions = make_store({1: {'i1': 0.1, 'i2': 0.9}})
    test = make_store({1: {'i1': 2.0, 'i2': 1.0}})

    result = NDCG(cutoffs=[1], gain='exponential').compute(predictions, test)
    assert result.value_at(1) == pytest.approx(1.0 / 3.0)


def test_ndcg_zero_ideal_is_undefined():
    predictions = make_store({1: {'i1': 0.5}})
    test = make_store({1: {'i1': 0.0}})

    assert math.isnan(ndcg_at_k(predictions, test, 5))


def test_ndcg_unknown_gain():
    with pytest.raises(ConfigurationError):
        NDCG(gain='quadratic')


# ============================================================================
# RMSE / MAE
# ============================================================================

def test_rmse_and_mae_values():
    predictions = make_store({1: {10: 3.0, 11: 4.0}})
    test = make_store({1: {10: 4.0, 11: 2.0}})

    assert rmse(predictions, test) == pytest.approx(math.sqrt(2.5))
    assert mae(predictions, test) == pytest.approx(1.5)


def test_rmse_disjoint_is_undefined():
    test = make_store({'u1': {'i1': 4.0, 'i2': 3.0}, 'u2': {'i3': 5.0}})
    predictions = make_store({'u3': {'i1': 4.0}})

    result = RMSE().compute(predictions, test)
    assert math.isnan(result.global_value)
    assert result.diagnostics['empty_users'] + result.diagnostics['empty_items'] == 3
    assert result.diagnostics['compared'] == 0


def test_rmse_coverage_counters():
    test = make_store({'u1': {'i1': 4.0, 'i2': 3.0}, 'u2': {'i3': 5.0}})
    predictions = make_store({'u1': {'i1': 3.0, 'i9': 1.0}})

    result = RMSE().compute(predictions, test)
    assert result.global_value == pytest.approx(1.0)
    assert result.diagnostics['empty_items'] == 1
    assert result.diagnostics['empty_users'] == 1
    assert math.isnan(result.user_value('u2'))


def test_mae_ignores_strategy():
    train = make_store({'u1': {'i1': 1.0}})
    test = make_store({'u1': {'i2': 4.0}})
    predictions = make_store({'u1': {'i2': 2.0}})

    assert MAE().compute(predictions, test, strategies.TestItems(train, test)).global_value == 2.0


# ============================================================================
# Factory and helpers
# ============================================================================

def test_factory_creates_registered_metrics():
    metrics = MetricFactory.create_metrics(['precision', 'NDCG', 'rmse'], cutoffs=[10, 5],
                                           relevance_threshold=4.0)
    assert list(metrics) == ['precision', 'ndcg', 'rmse']
    assert metrics['precision'].cutoffs == (5, 10)
    assert metrics['precision'].relevance_threshold == 4.0
    assert isinstance(metrics['rmse'], RMSE)


def test_factory_unknown_metric():
    with pytest.raises(ConfigurationError, match='Unknown metric'):
        MetricFactory.create('map')


@pytest.mark.parametrize('cutoffs', [[0], [-1], [1.5], [True], [5, 'x']])
def test_invalid_cutoffs(cutoffs):
    with pytest.raises(ConfigurationError):
        validate_cutoffs(cutoffs)


def test_mean_defined_skips_nan():
    assert mean_defined([1.0, float('nan'), 3.0]) == 2.0
    assert math.isnan(mean_defined([float('nan')]))
    assert math.isnan(mean_defined([]))


def test_result_to_dict(scenario_store):
    result = Precision(cutoffs=[1], relevance_threshold=3.0).compute(scenario_store, scenario_store)
    assert result.to_dict() == {
        'global': 1.0,
        'per_cutoff': {1: 1.0},
        'per_user': {'u1': 1.0, 'u2': 1.0},
    }
