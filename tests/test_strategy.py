"""Tests for download strategy selection and size formatting."""

import pytest

from common.utils import format_file_size
from gateway.strategy import DownloadStrategy, select_strategy


@pytest.mark.parametrize('size,threshold,expected', [
    (10, 0, DownloadStrategy.STREAM),
    (10 * 1024 ** 3, 0, DownloadStrategy.STREAM),
    (10, -1, DownloadStrategy.STREAM),
    (100, 100, DownloadStrategy.STREAM),
    (101, 100, DownloadStrategy.REDIRECT),
])
def test_select_strategy(size, threshold, expected):
    assert select_strategy(size, threshold) is expected


def test_strategy_values_match_format_parameter():
    assert DownloadStrategy.STREAM.value == 'stream'
    assert DownloadStrategy.REDIRECT.value == 'redirect'


@pytest.mark.parametrize('size,expected', [
    (0, '0 B'),
    (512, '512 B'),
    (1536, '1.50 KiB'),
    (5 * 1024 ** 2, '5.00 MiB'),
    (3 * 1024 ** 3, '3.00 GiB'),
])
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected
