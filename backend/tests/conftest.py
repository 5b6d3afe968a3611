"""
Pytest configuration and shared fixtures for the Tip Settlement tests.

Provides an in-memory SQLite session per test, an httpx client bound to the
FastAPI app, and valid wallet addresses / transaction ids for every network
family.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
import pytest_asyncio
from typing import AsyncGenerator

import base58
from algosdk import encoding
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings
from database import Base, get_db


# ── Sample Addresses ─────────────────────────────────────────────────
# Built from raw key bytes so checksums / lengths are valid by construction.

def solana_address(seed: int) -> str:
    return base58.b58encode(bytes([seed]) * 32).decode()


def solana_signature(seed: int) -> str:
    return base58.b58encode(bytes([seed]) * 64).decode()


def evm_address(seed: int) -> str:
    return "0x" + f"{seed:040x}"


def evm_tx_hash(seed: int) -> str:
    return "0x" + f"{seed:064x}"


def algorand_address(seed: int) -> str:
    return encoding.encode_address(bytes([seed]) * 32)


def algorand_tx_id(seed: int) -> str:
    # 52 chars of the base32 alphabet
    alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
    return (alphabet[seed % 32] * 51) + "Q"


def xrp_address(seed: int) -> str:
    # Version byte 0x00 + 20-byte account id, XRP base58 alphabet
    return base58.b58encode_check(b"\x00" + bytes([seed]) * 20, alphabet=base58.XRP_ALPHABET).decode()


def xrp_tx_hash(seed: int) -> str:
    return f"{seed:064X}"


VALID_WALLET_1 = algorand_address(1)
VALID_WALLET_2 = algorand_address(2)
INVALID_WALLET_SHORT = "AAAAAAAAAA"
INVALID_WALLET_BAD_CHECKSUM = VALID_WALLET_1[:-4] + ("AAAA" if not VALID_WALLET_1.endswith("AAAA") else "BBBB")

PLATFORM_SOLANA = solana_address(200)
PLATFORM_EVM = evm_address(0xFEE)
PLATFORM_ALGORAND = algorand_address(200)
PLATFORM_XRP = xrp_address(200)

TEST_JWT_SECRET = "test-jwt-secret-for-pytest-only"


# ── Test Configuration ───────────────────────────────────────────────
# Test-only values for settings that would normally come from .env

@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    monkeypatch.setattr(settings, "jwt_secret", TEST_JWT_SECRET)
    monkeypatch.setattr(settings, "environment", "development")
    monkeypatch.setattr(settings, "settlement_api_key", "")
    monkeypatch.setattr(settings, "platform_fee_bps", 300)
    monkeypatch.setattr(settings, "platform_wallet_solana", PLATFORM_SOLANA)
    monkeypatch.setattr(settings, "platform_wallet_evm", PLATFORM_EVM)
    monkeypatch.setattr(settings, "platform_wallet_algorand", PLATFORM_ALGORAND)
    monkeypatch.setattr(settings, "platform_wallet_xrp", PLATFORM_XRP)
    return settings


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    from middleware.rate_limit import limiter
    limiter.reset()
    yield
    limiter.reset()


# ── Database Fixtures ────────────────────────────────────────────────


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    import db_models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession):
    """
    httpx client against the FastAPI app with the in-memory database.

    Overrides the get_db dependency to use the test session.
    """
    from main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest.fixture
def sample_creator_wallet() -> str:
    """Creator wallet on Solana."""
    return solana_address(7)


@pytest.fixture
def sample_fan_wallet() -> str:
    """Tipper wallet on Solana."""
    return solana_address(9)


@pytest.fixture
def sample_tip_id() -> str:
    return solana_signature(11)


@pytest.fixture
def observed_tip(sample_creator_wallet, sample_fan_wallet, sample_tip_id):
    """Factory for verified Solana tips; keyword overrides replace defaults."""
    from services.settlement_service import ObservedTip
    from domain.enums import Network

    def _make(**overrides):
        fields = dict(
            tip_id=sample_tip_id,
            network=Network.SOLANA,
            from_address=sample_fan_wallet,
            to_address=sample_creator_wallet,
            amount=1_000_000_000,
        )
        fields.update(overrides)
        return ObservedTip(**fields)

    return _make


@pytest.fixture
def auth_headers():
    """Bearer token headers for a wallet."""
    from middleware.auth import issue_access_token

    def _make(wallet: str) -> dict:
        return {"Authorization": f"Bearer {issue_access_token(wallet_address=wallet)}"}

    return _make
