"""Tests for logging setup and credential masking."""

import logging

import pytest

from common.logging_config import SensitiveDataFilter, setup_logging


@pytest.fixture
def restore_loggers():
    """Undo setup_logging so other tests keep default propagation."""
    names = ('cli', 'common', 'ingestion')
    saved = {name: (logging.getLogger(name).level, logging.getLogger(name).propagate,
                    list(logging.getLogger(name).handlers)) for name in names}
    yield
    for name, (level, propagate, handlers) in saved.items():
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = propagate
        logger.handlers = handlers


def make_record(msg, args=None):
    return logging.LogRecord('test', logging.INFO, __file__, 1, msg, args, None)


@pytest.mark.parametrize('message', [
    'apikey=abc123secret',
    'api_key: "abc123secret"',
    'Authorization: Bearer abc123secret',
    'token=abc123secret',
    'upload params signature=abc123secret&timestamp=1',
])
def test_filter_masks_credentials(message):
    record = make_record(message)

    assert SensitiveDataFilter().filter(record) is True
    assert 'abc123secret' not in record.msg
    assert '***MASKED***' in record.msg


def test_filter_masks_args():
    record = make_record('headers %s', ('Bearer abc123secret',))

    SensitiveDataFilter().filter(record)

    assert record.args == ('Bearer ***MASKED***',)


def test_filter_leaves_plain_messages():
    record = make_record('Upload succeeded [file=a.png, size=1.00 KiB]')

    SensitiveDataFilter().filter(record)

    assert record.msg == 'Upload succeeded [file=a.png, size=1.00 KiB]'


def test_setup_logging_configures_engine_loggers(restore_loggers):
    logger = setup_logging('cli', 'DEBUG')

    assert logger.name == 'cli'
    for name in ('cli', 'common', 'ingestion'):
        configured = logging.getLogger(name)
        assert configured.level == logging.DEBUG
        assert configured.propagate is False
        assert len(configured.handlers) == 1
