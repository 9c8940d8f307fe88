#!/usr/bin/env python3
"""
Unit tests for expiry resolution
"""

import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from cachefront.errors import UsageError
from cachefront.expiry import Expire, ExpirationPolicy, ResolvedExpiry, DEFAULT_EXPIRE


@pytest.fixture
def policy():
    return ExpirationPolicy()


def test_default_is_one_day(policy):
    assert policy.resolve() == ResolvedExpiry(ttl=86400, on_save=False)
    assert DEFAULT_EXPIRE == 86400


def test_custom_default():
    assert ExpirationPolicy(default_expire=120).resolve(None).ttl == 120


def test_seconds_pass_through(policy):
    assert policy.resolve(60) == ResolvedExpiry(ttl=60)
    assert policy.resolve(2592000).ttl == 2592000


def test_absolute_timestamp_passes_through(policy):
    assert policy.resolve(1900000000) == ResolvedExpiry(ttl=1900000000)


def test_datetime_becomes_unix_time(policy):
    when = datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert policy.resolve(when).ttl == int(when.timestamp())


def test_never(policy):
    assert policy.resolve(Expire.NEVER) == ResolvedExpiry(ttl=0, on_save=False)
    assert policy.resolve(0) == ResolvedExpiry(ttl=0, on_save=False)


def test_on_save_registers_trigger(policy):
    assert policy.resolve(Expire.ON_SAVE) == ResolvedExpiry(ttl=0, on_save=True)


def test_named_periods(policy):
    assert policy.resolve(Expire.HOURLY).ttl == 3600
    assert policy.resolve(Expire.WEEKLY).ttl == 604800
    assert policy.resolve(Expire.MONTHLY).ttl == 2419200


@pytest.mark.parametrize("value", [-1, "tomorrow", 1.5, True])
def test_invalid_values_rejected(policy, value):
    with pytest.raises(UsageError):
        policy.resolve(value)
