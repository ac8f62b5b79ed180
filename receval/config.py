"""
Evaluation Configuration.

EvaluationConfig enumerates everything an evaluation run needs: how to
split, which candidate strategy to use, the relevance threshold, cutoffs and
metrics. validate() checks every field up front so that a bad name or value
fails before any data is touched.

Example YAML (config/evaluation.yaml):

    evaluation:
      test_fraction: 0.2
      per_user: true
      seed: 42
      relevance_threshold: 3.0
      cutoffs: [5, 10]
      strategy_name: test_items
      metrics: [precision, ndcg, rmse]

Usage:
    config = EvaluationConfig.from_yaml('config/evaluation.yaml')
"""

import logging
import math
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .data.processing.random_split import validate_test_fraction
from .evaluation.metrics import MetricFactory, validate_cutoffs
from .evaluation.strategies import validate_strategy_name
from .exceptions import ConfigurationError, IOFailure


logger = logging.getLogger(__name__)


SPLIT_METHODS = ('random', 'cross_validation', 'temporal')


@dataclass
class EvaluationConfig:
    """Configuration of one evaluation run."""

    # Splitting
    test_fraction: float = 0.2
    per_user: bool = True
    seed: Optional[int] = 42
    keep_order: bool = False
    split_method: str = 'random'
    n_folds: int = 1

    # Candidate selection
    strategy_name: str = 'test_items'
    relevance_threshold: float = 3.0

    # Metrics
    cutoffs: List[int] = field(default_factory=lambda: [5, 10])
    metrics: List[str] = field(default_factory=lambda: ['precision', 'ndcg', 'rmse'])

    def validate(self) -> 'EvaluationConfig':
        """
        Check every field.

        Returns:
            self

        Raises:
            ConfigurationError: On the first invalid field
        """
        if self.split_method not in SPLIT_METHODS:
            raise ConfigurationError(
                f"Unknown split method: {self.split_method}. Available: {list(SPLIT_METHODS)}"
            )
        if isinstance(self.n_folds, bool) or not isinstance(self.n_folds, int) or self.n_folds < 1:
            raise ConfigurationError(f"n_folds must be a positive integer, got {self.n_folds!r}")
        if self.split_method == 'cross_validation':
            if self.n_folds < 2:
                raise ConfigurationError(f"cross_validation needs n_folds >= 2, got {self.n_folds}")
        else:
            validate_test_fraction(self.test_fraction)
        if self.split_method == 'temporal' and self.n_folds != 1:
            raise ConfigurationError("temporal split produces a single fold; set n_folds to 1")
        if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, int)
                                      or self.seed < 0):
            raise ConfigurationError(f"seed must be a non-negative integer or null, got {self.seed!r}")
        for flag in ('per_user', 'keep_order'):
            if not isinstance(getattr(self, flag), bool):
                raise ConfigurationError(f"{flag} must be true or false, got {getattr(self, flag)!r}")

        if isinstance(self.relevance_threshold, bool) or not isinstance(self.relevance_threshold, (int, float)) \
                or math.isnan(self.relevance_threshold):
            raise ConfigurationError(f"relevance_threshold must be a number, got {self.relevance_threshold!r}")

        validate_cutoffs(self.cutoffs)
        validate_strategy_name(self.strategy_name)
        if not self.metrics:
            raise ConfigurationError("At least one metric is required")
        for name in self.metrics:
            MetricFactory.validate_name(name)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EvaluationConfig':
        """
        Build a config from a dict; keys may sit under an 'evaluation' section.

        Raises:
            ConfigurationError: On unknown keys or invalid values
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration must be a mapping, got {type(data).__name__}")
        section = data.get('evaluation', data) or {}

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(section) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {unknown}")

        config = cls(**section)
        if config.cutoffs is not None:
            config.cutoffs = list(config.cutoffs)
        return config.validate()

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> 'EvaluationConfig':
        """
        Load a config from a YAML file.

        Raises:
            IOFailure: If the file cannot be read
            ConfigurationError: If the content is invalid
        """
        config_path = Path(config_path)
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise IOFailure(config_path, str(e)) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        logger.info(f"Loaded evaluation config from {config_path}")
        return cls.from_dict(data)
