import logging

import pytest

from Epochipy.shared.logging_config import get_logger, setup_logging


@pytest.fixture
def restore_package_logger():
    logger = logging.getLogger('Epochipy')
    saved = list(logger.handlers), logger.level
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in saved[0]:
        logger.addHandler(handler)
    logger.setLevel(saved[1])


def test_console_only(restore_package_logger, tmp_path):
    logger = setup_logging(log_dir=tmp_path, log_to_file=False)
    assert logger.name == 'Epochipy'
    assert len(logger.handlers) == 1
    assert logger.handlers[0].level == logging.INFO
    assert not any(tmp_path.iterdir())


def test_file_logging(restore_package_logger, tmp_path):
    logger = setup_logging(dev_mode=True, log_dir=tmp_path, log_filename="run.log")
    get_logger('core.pipeline').debug("written to file")
    for handler in logger.handlers:
        handler.flush()
    assert (tmp_path / "run.log").exists()
    assert (tmp_path / "app.log").exists()
    assert "written to file" in (tmp_path / "run.log").read_text()


def test_repeated_setup_does_not_duplicate_handlers(restore_package_logger, tmp_path):
    setup_logging(log_to_file=False)
    logger = setup_logging(log_to_file=False)
    assert len(logger.handlers) == 1


def test_get_logger_namespacing():
    assert get_logger('plots').name == 'Epochipy.plots'
    assert get_logger('Epochipy.core').name == 'Epochipy.core'
    assert get_logger('Epochipy').name == 'Epochipy'
