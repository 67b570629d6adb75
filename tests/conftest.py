"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for tests
os.environ.setdefault("PRESALE_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PRESALE_LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from unittest.mock import AsyncMock, MagicMock

import pytest

from presale.config.settings import SaleSettings
from presale.core.engine import TokenSale
from presale.core.ledger import InMemoryAssetLedger, InMemoryWallet
from presale.core.reporting import SaleReporter
from tests.helpers import (
    AUDITOR,
    BUYER,
    OWNER,
    RATE,
    REFERRER_1,
    REFERRER_2,
    REFERRER_3,
    SALE_HOLDER,
    filler,
)


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def config():
    """Default sale settings."""
    return SaleSettings()


@pytest.fixture
def small_config():
    """Three-stage sale: caps of $100, $101 and $102."""
    return SaleSettings(stage_max=2, season_stage_width=2)


@pytest.fixture
def ledger():
    return InMemoryAssetLedger(SALE_HOLDER)


@pytest.fixture
def wallet():
    return InMemoryWallet()


@pytest.fixture
def make_sale(ledger, wallet):
    """
    Factory for open sales with an auditor and a $200 rate.

    Returns:
        Callable taking settings and optional overrides
    """
    def _make(config: SaleSettings, rate: int = RATE, **kwargs) -> TokenSale:
        sale = TokenSale(config, ledger, wallet, owner=OWNER, **kwargs)
        sale.add_auditor(OWNER, AUDITOR)
        if rate:
            sale.set_exchange_rate(AUDITOR, rate)
        return sale

    return _make


@pytest.fixture
def sale(make_sale, config):
    """Open sale with default settings."""
    return make_sale(config)


@pytest.fixture
def small_sale(make_sale, small_config):
    """Open three-stage sale."""
    return make_sale(small_config)


@pytest.fixture
def reporter(sale):
    return SaleReporter(sale)


@pytest.fixture
def referral_chain(ledger):
    """
    Whitelisted BUYER under a three-level qualifying chain.

    REFERRER_1 <- BUYER, REFERRER_2 <- REFERRER_1, REFERRER_3 <- REFERRER_2.
    Each referrer at level i gets i extra referees so it has i + 1.
    """
    ledger.add_to_whitelist(BUYER)
    ledger.register_referral(BUYER, REFERRER_1)
    ledger.register_referral(REFERRER_1, REFERRER_2)
    ledger.register_referral(filler(0), REFERRER_2)
    ledger.register_referral(REFERRER_2, REFERRER_3)
    ledger.register_referral(filler(1), REFERRER_3)
    ledger.register_referral(filler(2), REFERRER_3)
    return [REFERRER_1, REFERRER_2, REFERRER_3]
