"""Tests for log masking and logger setup."""

import logging

import pytest

from common.logging_config import SensitiveDataFilter, get_logger, setup_logging


def make_record(msg, args=()):
    return logging.LogRecord('gateway.test', logging.INFO, __file__, 1, msg, args, None)


@pytest.fixture
def log_filter():
    return SensitiveDataFilter()


def test_masks_signed_url_query(log_filter):
    record = make_record('Streaming https://files.test/file/video.mp4?sign=abc123&expires=1 now')

    log_filter.filter(record)

    assert 'abc123' not in record.getMessage()
    assert 'https://files.test/file/video.mp4?***MASKED***' in record.getMessage()


def test_masks_signing_fields_in_json(log_filter):
    record = make_record('Body: {"sign": "d3adb33f", "uk": "4204204204", "fs_id": "998877"}')

    log_filter.filter(record)

    message = record.getMessage()
    assert 'd3adb33f' not in message
    assert '4204204204' not in message
    assert '998877' in message


def test_masks_bearer_tokens(log_filter):
    record = make_record('Retrying with Bearer secret-token-value')

    log_filter.filter(record)

    assert 'secret-token-value' not in record.getMessage()


def test_masks_format_args(log_filter):
    record = make_record('Resolved %s', ('https://files.test/x?sign=abc123',))

    log_filter.filter(record)

    assert 'abc123' not in record.getMessage()


def test_leaves_ordinary_messages_alone(log_filter):
    record = make_record('Resolved share AbCdEf: holiday video.mp4 (10 B)')

    log_filter.filter(record)

    assert record.getMessage() == 'Resolved share AbCdEf: holiday video.mp4 (10 B)'


def test_setup_logging_attaches_masking_handler_once():
    logger = setup_logging('sharefetch-test-component', log_level='DEBUG')
    again = setup_logging('sharefetch-test-component', log_level='DEBUG')

    assert logger is again
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert any(isinstance(f, SensitiveDataFilter) for f in logger.handlers[0].filters)
    assert logger.propagate is False


def test_get_logger_returns_named_logger():
    assert get_logger('gateway.resolver').name == 'gateway.resolver'
