"""
Data Layer.

- PreferenceStore: in-memory user -> item -> preference store
- Parsers: delimited rating files -> PreferenceStore
- processing: train/test splitters

Example:
    >>> from receval.data import MovielensParser, RandomSplitter
    >>> store = MovielensParser().parse('data/ml-100k/u.data')
    >>> folds = RandomSplitter(test_fraction=0.2, seed=42).split(store)
"""

from .preference_store import PreferenceStore
from .parsers import Parser, DelimitedParser, SimpleParser, MovielensParser
from .processing import (
    Fold,
    BaseSplitter,
    RandomSplitter,
    CrossValidationSplitter,
    TemporalSplitter,
)


__all__ = [
    'PreferenceStore',
    'Parser',
    'DelimitedParser',
    'SimpleParser',
    'MovielensParser',
    'Fold',
    'BaseSplitter',
    'RandomSplitter',
    'CrossValidationSplitter',
    'TemporalSplitter',
]
