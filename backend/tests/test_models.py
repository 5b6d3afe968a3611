"""
Tests for Pydantic request/response models.

Tests: aliases, defaults, string amounts, response builders.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
from pydantic import ValidationError

from conftest import solana_address, solana_signature
from db_models import FeeSetting, TipRecord
from domain.enums import ContentType, Network
from models import (
    FeePreviewRequest,
    FeeSettingResponse,
    SetCustomFeeRequest,
    SettleTipRequest,
    TipRecordResponse,
    bps_to_percent,
)


class TestSettleTipRequest:

    @pytest.mark.unit
    def test_camel_case_aliases(self):
        req = SettleTipRequest(
            tipId=solana_signature(1),
            network="solana",
            fromAddress=solana_address(1),
            toAddress=solana_address(2),
            amount="1000000000",
            contentId="video-1",
        )
        assert req.network is Network.SOLANA
        assert req.amount == "1000000000"
        assert req.content_id == "video-1"
        assert req.memo is None

    @pytest.mark.unit
    def test_python_name_construction(self):
        """Model should accept Python field names (populate_by_name=True)."""
        req = SettleTipRequest(
            tip_id=solana_signature(1),
            network=Network.SOLANA,
            from_address=solana_address(1),
            to_address=solana_address(2),
            amount=5,
        )
        assert req.amount == 5

    @pytest.mark.unit
    def test_unknown_network_rejected(self):
        with pytest.raises(ValidationError):
            SettleTipRequest(
                tipId="x", network="dogecoin", fromAddress="a", toAddress="b", amount=1,
            )

    @pytest.mark.unit
    def test_missing_amount_rejected(self):
        with pytest.raises(ValidationError):
            SettleTipRequest(tipId="x", network="solana", fromAddress="a", toAddress="b")


class TestFeeModels:

    @pytest.mark.unit
    def test_set_custom_fee_defaults(self):
        req = SetCustomFeeRequest(customFeeBps=250)
        assert req.custom_fee_bps == 250
        assert req.content_type is ContentType.ASSET
        assert req.fee_recipient is None

    @pytest.mark.unit
    def test_bps_bounds_left_to_registry(self):
        """Out-of-range values parse; the registry raises the domain error."""
        assert SetCustomFeeRequest(customFeeBps=9000).custom_fee_bps == 9000

    @pytest.mark.unit
    def test_content_type_values(self):
        assert SetCustomFeeRequest(customFeeBps=1, contentType="fvm_video").content_type is ContentType.FVM_VIDEO
        with pytest.raises(ValidationError):
            SetCustomFeeRequest(customFeeBps=1, contentType="podcast")

    @pytest.mark.unit
    def test_preview_request(self):
        req = FeePreviewRequest(amount="10", network="base", recipientWallet="0x" + "1" * 40)
        assert req.network is Network.BASE

    @pytest.mark.unit
    @pytest.mark.parametrize("bps,expected", [(0, "0.00"), (300, "3.00"), (1050, "10.50"), (5000, "50.00"), (7, "0.07")])
    def test_bps_to_percent(self, bps, expected):
        assert bps_to_percent(bps) == expected

    @pytest.mark.unit
    def test_fee_setting_response(self):
        setting = FeeSetting(
            recipient_wallet="W", content_id="c", content_type="asset", custom_fee_bps=1250,
            set_by_wallet="W", synced_to_chain=False, version=3,
        )
        body = FeeSettingResponse.from_setting(setting).model_dump(by_alias=True)
        assert body["customFeeBps"] == 1250
        assert body["customFeePercent"] == "12.50"
        assert body["version"] == 3


class TestTipRecordResponse:

    @pytest.mark.unit
    def test_amounts_serialized_as_strings(self):
        record = TipRecord(
            tip_id="t", network="ethereum", from_address="a", to_address="b",
            amount=10**18, platform_amount=3 * 10**16, custom_fee_amount=0,
            creator_amount=97 * 10**16, status="settled",
        )
        body = TipRecordResponse.from_record(record, duplicate=True).model_dump(by_alias=True)
        assert body["amount"] == "1000000000000000000"
        assert body["split"]["creatorAmount"] == "970000000000000000"
        assert body["split"]["customFeeAmount"] == "0"
        assert body["tokenSymbol"] == "ETH"
        assert body["duplicate"] is True

    @pytest.mark.unit
    def test_rejected_record_without_amount(self):
        record = TipRecord(
            tip_id="t", network="solana", from_address="a", to_address="b",
            amount=None, status="rejected", rejection_code="invalid_amount",
        )
        body = TipRecordResponse.from_record(record).model_dump(by_alias=True)
        assert body["amount"] is None
        assert body["rejectionCode"] == "invalid_amount"
        assert body["split"]["platformAmount"] is None
