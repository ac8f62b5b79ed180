"""
Tests for logging helpers
"""
import logging

from receval.logging_utils import (
    ROOT_LOGGER_NAME,
    format_metrics,
    format_params,
    generate_run_id,
    setup_evaluation_logger,
)


def test_format_metrics_prints_nan():
    assert format_metrics({'precision': 0.5, 'rmse': float('nan')}) == 'precision=0.5000, rmse=nan'


def test_format_params():
    assert format_params({'seed': 42, 'test_fraction': 0.2}) == 'seed=42, test_fraction=0.2'


def test_generate_run_id():
    assert generate_run_id('popularity').startswith('popularity_')


def test_setup_evaluation_logger_writes_file(tmp_path):
    logger = setup_evaluation_logger('run_1', log_dir=str(tmp_path), console=False)
    try:
        logging.getLogger(f'{ROOT_LOGGER_NAME}.evaluation').info('fold complete')
        for handler in logger.handlers:
            handler.flush()
        content = (tmp_path / 'run_1.log').read_text(encoding='utf-8')
        assert '| INFO | fold complete' in content
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
