"""
Data Processing: train/test splitting.

- RandomSplitter: seeded random holdout, per user or global
- CrossValidationSplitter: n-fold cross-validation
- TemporalSplitter: chronological holdout
"""

from .random_split import (
    Fold,
    BaseSplitter,
    RandomSplitter,
    build_partition,
    compute_test_size,
    validate_test_fraction,
)
from .cross_validation_split import CrossValidationSplitter
from .temporal_split import TemporalSplitter


__all__ = [
    'Fold',
    'BaseSplitter',
    'RandomSplitter',
    'CrossValidationSplitter',
    'TemporalSplitter',
    'build_partition',
    'compute_test_size',
    'validate_test_fraction',
]
