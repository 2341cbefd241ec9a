"""Pytest configuration."""

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

# Ensure test environment
os.environ.setdefault("PL_DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("PL_REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("PL_DEBUG", "true")

from app.core.links import ResolvedLink  # noqa: E402
from app.models.tables import CommissionType  # noqa: E402


NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def resolved_link():
    """A snapshot for an open campaign around NOW."""
    return ResolvedLink(
        link_id=uuid4(),
        coupon="SUMMER10",
        affiliate_id=uuid4(),
        campaign_id=uuid4(),
        title="Summer Sale",
        url="https://shop.example.com/landing?ref=aff",
        start_on=NOW - timedelta(days=7),
        end_on=NOW + timedelta(days=7),
        commission_type=CommissionType.PERCENT,
        commission_value=Decimal("12.50"),
    )
