"""
Tests for EvaluationConfig validation and YAML loading
"""
import pytest

from receval.config import EvaluationConfig
from receval.exceptions import ConfigurationError, IOFailure


def test_defaults_are_valid():
    config = EvaluationConfig()
    assert config.validate() is config
    assert config.cutoffs == [5, 10]
    assert config.strategy_name == 'test_items'


@pytest.mark.parametrize('overrides', [
    {'strategy_name': 'TestItemsStrategy'},
    {'metrics': ['map']},
    {'metrics': []},
    {'cutoffs': [0]},
    {'test_fraction': 1.0},
    {'split_method': 'bootstrap'},
    {'split_method': 'cross_validation', 'n_folds': 1},
    {'split_method': 'temporal', 'n_folds': 2},
    {'n_folds': 0},
    {'relevance_threshold': 'high'},
    {'seed': 'x'},
    {'seed': -1},
    {'seed': 1.5},
    {'per_user': 'yes'},
    {'keep_order': 1},
])
def test_invalid_values(overrides):
    with pytest.raises(ConfigurationError):
        EvaluationConfig(**overrides).validate()


def test_cross_validation_ignores_test_fraction():
    config = EvaluationConfig(split_method='cross_validation', n_folds=5, test_fraction=0.0)
    assert config.validate() is config


def test_from_dict_roundtrip():
    config = EvaluationConfig(cutoffs=[1, 3], metrics=['recall', 'mae'], seed=None)
    assert EvaluationConfig.from_dict(config.to_dict()) == config


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ConfigurationError, match='Unknown configuration keys'):
        EvaluationConfig.from_dict({'evaluation': {'top_k': 10}})


def test_from_yaml(tmp_path):
    path = tmp_path / 'evaluation.yaml'
    path.write_text(
        "evaluation:\n"
        "  test_fraction: 0.3\n"
        "  strategy_name: all_items\n"
        "  relevance_threshold: 4\n"
        "  cutoffs: [1, 5]\n"
        "  metrics: [precision, rmse]\n",
        encoding='utf-8'
    )
    config = EvaluationConfig.from_yaml(path)

    assert config.test_fraction == 0.3
    assert config.strategy_name == 'all_items'
    assert config.relevance_threshold == 4
    assert config.cutoffs == [1, 5]
    assert config.seed == 42


def test_from_yaml_empty_file_gives_defaults(tmp_path):
    path = tmp_path / 'empty.yaml'
    path.write_text("", encoding='utf-8')
    assert EvaluationConfig.from_yaml(path) == EvaluationConfig()


def test_from_yaml_invalid_yaml(tmp_path):
    path = tmp_path / 'broken.yaml'
    path.write_text("evaluation: [1, 2\n", encoding='utf-8')
    with pytest.raises(ConfigurationError, match='Invalid YAML'):
        EvaluationConfig.from_yaml(path)


def test_from_yaml_missing_file(tmp_path):
    with pytest.raises(IOFailure):
        EvaluationConfig.from_yaml(tmp_path / 'missing.yaml')
