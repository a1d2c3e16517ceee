import logging

import pytest

from fastblocks import config
from fastblocks.logging_config import setup_logging


def test_datadir_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv('FASTBLOCKS_DATADIR', str(tmp_path))
    assert config.datadir() == tmp_path


def test_show_backend_name(monkeypatch):
    monkeypatch.setenv('FASTBLOCKS_SHOW_BACKEND', 'PLOTS')
    assert config.show_backend_name() == 'plots'


def test_setup_logging(monkeypatch, tmp_path):
    monkeypatch.setenv('FASTBLOCKS_LOGLEVEL', 'debug')
    logfile = tmp_path / 'run.log'
    logger = setup_logging(log_file=str(logfile))
    try:
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        logging.getLogger('fastblocks.training').info("epoch done")
        for handler in logger.handlers:
            handler.flush()
        assert 'epoch done' in logfile.read_text()
        # called again without a file: handlers are replaced, not added
        assert len(setup_logging(logging.WARNING).handlers) == 1
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)


def test_invalid_show_backend(monkeypatch):
    monkeypatch.setenv('FASTBLOCKS_SHOW_BACKEND', 'gif')
    with pytest.raises(ValueError):
        config.show_backend_name()
