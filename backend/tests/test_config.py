"""
Tests for settings loading and production validation.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
from pydantic import ValidationError

from config import Settings
from domain.enums import Network


def _production(**overrides):
    values = dict(
        environment="production",
        jwt_secret="s" * 32,
        settlement_api_key="k" * 32,
        platform_wallet_solana="sol",
        platform_wallet_evm="evm",
        platform_wallet_algorand="algo",
        platform_wallet_xrp="xrp",
        cors_origins="https://app.example.com",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestPlatformFee:

    @pytest.mark.unit
    def test_default_is_three_percent(self):
        assert Settings(_env_file=None).platform_fee_bps == 300

    @pytest.mark.unit
    @pytest.mark.parametrize("bps", [-1, 5000, 10_000])
    def test_must_leave_room_for_max_custom_fee(self, bps):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, platform_fee_bps=bps)

    @pytest.mark.unit
    def test_upper_bound(self):
        assert Settings(_env_file=None, platform_fee_bps=4999).platform_fee_bps == 4999


class TestPlatformWallets:

    @pytest.mark.unit
    def test_wallet_per_network_family(self):
        s = _production()
        assert s.platform_wallet_for(Network.SOLANA) == "sol"
        assert s.platform_wallet_for(Network.ARBITRUM) == "evm"
        assert s.platform_wallet_for(Network.ALGORAND) == "algo"
        assert s.platform_wallet_for(Network.XRP) == "xrp"


class TestProductionValidation:

    @pytest.mark.unit
    def test_complete_production_settings_pass(self):
        _production().validate_production_settings()

    @pytest.mark.unit
    @pytest.mark.parametrize("field", ["jwt_secret", "settlement_api_key", "platform_wallet_evm", "platform_wallet_xrp"])
    def test_missing_secret_or_wallet(self, field):
        with pytest.raises(ValueError):
            _production(**{field: ""}).validate_production_settings()

    @pytest.mark.unit
    def test_wildcard_cors(self):
        with pytest.raises(ValueError):
            _production(cors_origins="*").validate_production_settings()

    @pytest.mark.unit
    def test_development_only_warns(self, caplog):
        Settings(_env_file=None, environment="development").validate_production_settings()
        assert "SETTLEMENT_API_KEY" in caplog.text

    @pytest.mark.unit
    def test_cors_origins_list(self):
        s = Settings(_env_file=None, cors_origins="http://a, http://b")
        assert s.cors_origins_list == ["http://a", "http://b"]
