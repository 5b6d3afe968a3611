"""
Configuration management for the Creator Tip Settlement service.

Loads settings from .env via pydantic-settings.

Notes:
    - platform_fee_bps is operator policy; no API endpoint can change it
    - validate_production_settings() enforces secrets, platform wallets and
      strict CORS in production
"""
import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

from domain.constants import FEE_DENOMINATOR, MAX_CUSTOM_FEE_BPS, PLATFORM_FEE_BPS
from domain.enums import AddressFamily, Network

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Fee policy ──────────────────────────────────────────────────
    platform_fee_bps: int = PLATFORM_FEE_BPS   # 300 = 3.00%

    # ── Platform treasury wallets (receive the platform fee) ────────
    platform_wallet_solana: str = ""
    platform_wallet_evm: str = ""
    platform_wallet_algorand: str = ""
    platform_wallet_xrp: str = ""

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/tip_settlement.db"

    # ── Settlement intake ───────────────────────────────────────────
    # Shared secret for the service that observes and verifies chain
    # transfers before calling /tips/settle. Empty = open (development).
    settlement_api_key: str = ""

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"

    # ── Auth (JWT) ──────────────────────────────────────────────────
    jwt_secret: str = ""
    jwt_issuer: str = "tip-settlement-api"
    jwt_access_ttl_minutes: int = 15

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:8080,http://127.0.0.1:8080,http://localhost:5173,http://127.0.0.1:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("platform_fee_bps")
    @classmethod
    def _check_platform_fee(cls, value: int) -> int:
        # The largest custom fee must still leave the creator something.
        if value < 0 or value + MAX_CUSTOM_FEE_BPS >= FEE_DENOMINATOR:
            raise ValueError(
                f"PLATFORM_FEE_BPS must be in [0, {FEE_DENOMINATOR - MAX_CUSTOM_FEE_BPS - 1}], got {value}"
            )
        return value

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def platform_wallet_for(self, network: Network) -> str:
        """Treasury wallet that receives the platform fee on ``network``."""
        family = network.address_family
        if family is AddressFamily.SOLANA:
            return self.platform_wallet_solana
        if family is AddressFamily.EVM:
            return self.platform_wallet_evm
        if family is AddressFamily.XRP:
            return self.platform_wallet_xrp
        return self.platform_wallet_algorand

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup.
        """
        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if not self.jwt_secret:
                raise ValueError(
                    "JWT_SECRET must be set in production. "
                    "It is used to verify creator access tokens for fee changes."
                )
            if not self.settlement_api_key:
                raise ValueError(
                    "SETTLEMENT_API_KEY must be set in production. "
                    "Without it anyone can submit tips for settlement."
                )
            missing = [
                f"platform_wallet_{family.value}" for family in AddressFamily
                if not getattr(self, f"platform_wallet_{family.value}")
            ]
            if missing:
                raise ValueError(
                    f"Platform wallets not configured: {', '.join(n.upper() for n in missing)}"
                )
            logger.info("✅ Production settings validated")
        else:
            warnings = []
            if not self.settlement_api_key:
                warnings.append("SETTLEMENT_API_KEY empty (settlement intake is open)")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            for family in AddressFamily:
                if not getattr(self, f"platform_wallet_{family.value}"):
                    warnings.append(f"PLATFORM_WALLET_{family.value.upper()} empty ({family.value} tips will be rejected)")
            for w in warnings:
                logger.warning(f"⚠️  {w}")


# Global settings instance
settings = Settings()
