"""Shared fixtures for fireside_tips tests."""

from __future__ import annotations

from decimal import Decimal

import pytest
from pytest_metadata.plugin import metadata_key

from fireside_tips.models.config import EngineConfig
from fireside_tips.service import TippingService
from fireside_tips.storage.sqlite import SQLiteTipStore

from tests.factories import DIST_CONTRACT
from tests.mocks import MockNotifier, MockPriceSource, MockRoster, MockWallet

PAYER_ADDRESS = "0x2222222222222222222222222222222222222222"


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add chain info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Chain"] = "Base (8453), mocked"
    meta["Distribution Contract"] = DIST_CONTRACT
    meta["Payer"] = PAYER_ADDRESS


def make_test_config(**overrides) -> EngineConfig:
    """Build an EngineConfig suitable for testing."""
    defaults = dict(
        max_batch_size=20,
        distribution_contract=DIST_CONTRACT,
        from_address=PAYER_ADDRESS,
        wallet_rpc_url="http://127.0.0.1:9310",
        wallet_timeout=5,
        status_poll_interval=0.01,
        status_max_attempts=3,
        db_path=":memory:",
    )
    defaults.update(overrides)
    return EngineConfig(**defaults)


@pytest.fixture
def test_config():
    """Default EngineConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteTipStore."""
    s = SQLiteTipStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def mock_wallet():
    return MockWallet(atomic=False)


@pytest.fixture
def mock_price():
    return MockPriceSource(price=Decimal("2500"))


@pytest.fixture
def mock_roster():
    return MockRoster()


@pytest.fixture
def mock_notifier():
    return MockNotifier()


@pytest.fixture
async def service(test_config, store, mock_wallet, mock_price, mock_roster, mock_notifier):
    """Fully wired TippingService with mocked components."""
    svc = TippingService(
        test_config,
        mock_wallet,
        price_source=mock_price,
        roster=mock_roster,
        notifier=mock_notifier,
        store=store,
    )
    await svc.initialize()
    return svc
