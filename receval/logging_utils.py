"""
Logging Utilities for Evaluation Runs.

This module provides:
- Logger setup for evaluation runs (file + console handlers)
- Formatting helpers for parameters and metric values
- Run id generation

Library modules only call logging.getLogger(__name__); handlers are attached
when an application calls setup_evaluation_logger().

Example:
    >>> from receval.logging_utils import setup_evaluation_logger, generate_run_id
    >>> run_id = generate_run_id('popularity')
    >>> logger = setup_evaluation_logger(run_id, log_dir='logs/eval')
    >>> logger.info("Evaluation started | " + format_params(config.to_dict()))
"""

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

# ============================================================================
# Constants
# ============================================================================

ROOT_LOGGER_NAME = 'receval'

LOG_FORMAT = '%(asctime)s | %(levelname)s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


# ============================================================================
# Logger Setup
# ============================================================================

def setup_evaluation_logger(
    run_id: str,
    log_dir: Optional[str] = None,
    console: bool = True,
    level: int = logging.INFO
) -> logging.Logger:
    """
    Setup the package logger for an evaluation run.

    Handlers are attached to the 'receval' logger so every module's
    messages reach them.

    Args:
        run_id: Run identifier, used as the log file name
        log_dir: Directory for the log file (no file handler if None)
        console: Whether to also log to console
        level: Logging level of the handlers

    Returns:
        Configured logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    if log_dir is not None:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(Path(log_dir) / f'{run_id}.log', encoding='utf-8')
        fh.setLevel(level)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    if console:
        ch = logging.StreamHandler()
        ch.setLevel(level)
        ch.setFormatter(formatter)
        logger.addHandler(ch)

    return logger


# ============================================================================
# Format Helpers
# ============================================================================

def format_params(params: Dict[str, Any]) -> str:
    """Format parameters for logging."""
    items = []
    for k, v in params.items():
        if isinstance(v, float):
            items.append(f"{k}={v:.4g}")
        else:
            items.append(f"{k}={v}")
    return ", ".join(items)


def format_metrics(metrics: Dict[str, Optional[float]]) -> str:
    """Format metrics for logging; undefined values print as 'nan'."""
    items = []
    for k, v in metrics.items():
        if v is None or (isinstance(v, float) and math.isnan(v)):
            items.append(f"{k}=nan")
        else:
            items.append(f"{k}={v:.4f}")
    return ", ".join(items)


def generate_run_id(prefix: str = 'eval') -> str:
    """
    Generate unique run ID.

    Args:
        prefix: Recommender or experiment name

    Returns:
        Run ID like 'popularity_20251125_103000'
    """
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return f"{prefix}_{timestamp}"
