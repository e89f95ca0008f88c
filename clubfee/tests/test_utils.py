"""
Tests for shared helpers and logging setup.
"""
import logging

import pytest

from clubfee.core.logging import configure_logging
from clubfee.core.utils import format_amount, round_up_to_unit


@pytest.mark.parametrize("amount,expected", [
    (32100, 33000),
    (32000, 32000),
    (1, 1000),
    (0, 0),
    (-500, 0),
])
def test_round_up_to_unit(amount, expected):
    assert round_up_to_unit(amount) == expected


def test_round_up_keeps_large_amounts_exact():
    assert round_up_to_unit(10**17 + 1) == 10**17 + 1000
    assert round_up_to_unit(10**17 + 1000) == 10**17 + 1000


def test_round_up_to_custom_unit():
    assert round_up_to_unit(1201, unit=100) == 1300


def test_format_amount():
    assert format_amount(1234567) == "1,234,567원"


def test_configure_logging_without_level_uses_settings():
    configure_logging()

    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
