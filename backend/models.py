"""
Pydantic models for request/response validation.

Amounts travel as decimal strings in responses: wei-sized integers do not
survive JavaScript number parsing.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Union

from domain.enums import ContentType, Network


class ApiModel(BaseModel):
    """Shared base: allows construction by Python name or alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _str_or_none(value) -> Optional[str]:
    return str(value) if value is not None else None


# ── Tip Settlement Models ──────────────────────────────────────────

class SettleTipRequest(ApiModel):
    """A verified chain transfer submitted for settlement."""
    tip_id: str = Field(
        ...,
        alias="tipId",
        description="Transaction hash / signature of the tip transfer (idempotency key)",
        min_length=1,
    )
    network: Network
    from_address: str = Field(..., alias="fromAddress", min_length=1)
    to_address: str = Field(..., alias="toAddress", min_length=1, description="Creator wallet")
    amount: Union[int, float, str] = Field(
        ...,
        description="Amount in base units (lamports, wei, microAlgos); digit string or integer",
    )
    content_id: Optional[str] = Field(None, alias="contentId", max_length=128)
    memo: Optional[str] = None
    compensates_tip_id: Optional[str] = Field(None, alias="compensatesTipId", max_length=128)


class SplitResponse(ApiModel):
    platform_amount: Optional[str] = Field(None, alias="platformAmount")
    custom_fee_amount: Optional[str] = Field(None, alias="customFeeAmount")
    creator_amount: Optional[str] = Field(None, alias="creatorAmount")
    platform_fee_bps: Optional[int] = Field(None, alias="platformFeeBps")
    custom_fee_bps: Optional[int] = Field(None, alias="customFeeBps")
    fee_setting_version: Optional[int] = Field(None, alias="feeSettingVersion")


class TipRecordResponse(ApiModel):
    tip_id: str = Field(..., alias="tipId")
    network: str
    from_address: str = Field(..., alias="fromAddress")
    to_address: str = Field(..., alias="toAddress")
    amount: Optional[str] = None
    token_symbol: Optional[str] = Field(None, alias="tokenSymbol")
    split: SplitResponse
    platform_address: Optional[str] = Field(None, alias="platformAddress")
    fee_recipient_address: Optional[str] = Field(None, alias="feeRecipientAddress")
    content_id: Optional[str] = Field(None, alias="contentId")
    memo: Optional[str] = None
    status: str
    rejection_code: Optional[str] = Field(None, alias="rejectionCode")
    rejection_reason: Optional[str] = Field(None, alias="rejectionReason")
    settlement_ref: Optional[str] = Field(None, alias="settlementRef")
    compensates_tip_id: Optional[str] = Field(None, alias="compensatesTipId")
    created_at: Optional[str] = Field(None, alias="createdAt")
    settled_at: Optional[str] = Field(None, alias="settledAt")
    duplicate: bool = False

    @classmethod
    def from_record(cls, record, duplicate: bool = False) -> "TipRecordResponse":
        try:
            symbol = Network(record.network).token_symbol
        except ValueError:
            symbol = None
        return cls(
            tip_id=record.tip_id,
            network=record.network,
            from_address=record.from_address,
            to_address=record.to_address,
            amount=_str_or_none(record.amount),
            token_symbol=symbol,
            split=SplitResponse(
                platform_amount=_str_or_none(record.platform_amount),
                custom_fee_amount=_str_or_none(record.custom_fee_amount),
                creator_amount=_str_or_none(record.creator_amount),
                platform_fee_bps=record.platform_fee_bps,
                custom_fee_bps=record.custom_fee_bps,
                fee_setting_version=record.fee_setting_version,
            ),
            platform_address=record.platform_address,
            fee_recipient_address=record.fee_recipient_address,
            content_id=record.content_id,
            memo=record.memo,
            status=record.status,
            rejection_code=record.rejection_code,
            rejection_reason=record.rejection_reason,
            settlement_ref=record.settlement_ref,
            compensates_tip_id=record.compensates_tip_id,
            created_at=_iso(record.created_at),
            settled_at=_iso(record.settled_at),
            duplicate=duplicate,
        )


class BalanceResponse(ApiModel):
    network: str
    wallet: str
    amount: str
    display_amount: str = Field(..., alias="displayAmount")
    token_symbol: str = Field(..., alias="tokenSymbol")


# ── Fee Registry Models ────────────────────────────────────────────

class SetCustomFeeRequest(ApiModel):
    """Creator sets the custom fee for one content item."""
    custom_fee_bps: int = Field(
        ...,
        alias="customFeeBps",
        description="Custom fee in basis points, 0 - 5000 (0% - 50%)",
    )
    content_type: ContentType = Field(ContentType.ASSET, alias="contentType")
    fee_recipient: Optional[str] = Field(
        None,
        alias="feeRecipient",
        description="Wallet receiving the custom fee (defaults to the creator)",
    )
    transaction_hash: Optional[str] = Field(
        None,
        alias="transactionHash",
        max_length=128,
        description="Hash of the on-chain setVideoTipSettings call, if mirrored on chain",
    )


class FeeSettingResponse(ApiModel):
    recipient_wallet: str = Field(..., alias="recipientWallet")
    content_id: str = Field(..., alias="contentId")
    content_type: str = Field(..., alias="contentType")
    custom_fee_bps: int = Field(..., alias="customFeeBps")
    custom_fee_percent: str = Field(..., alias="customFeePercent")
    fee_recipient_wallet: Optional[str] = Field(None, alias="feeRecipientWallet")
    set_by_wallet: str = Field(..., alias="setByWallet")
    transaction_hash: Optional[str] = Field(None, alias="transactionHash")
    synced_to_chain: bool = Field(..., alias="syncedToChain")
    version: int
    updated_at: Optional[str] = Field(None, alias="updatedAt")

    @classmethod
    def from_setting(cls, setting) -> "FeeSettingResponse":
        return cls(
            recipient_wallet=setting.recipient_wallet,
            content_id=setting.content_id,
            content_type=setting.content_type,
            custom_fee_bps=setting.custom_fee_bps,
            custom_fee_percent=bps_to_percent(setting.custom_fee_bps),
            fee_recipient_wallet=setting.fee_recipient_wallet,
            set_by_wallet=setting.set_by_wallet,
            transaction_hash=setting.transaction_hash,
            synced_to_chain=setting.synced_to_chain,
            version=setting.version,
            updated_at=_iso(setting.updated_at),
        )


class EffectiveFeeConfigResponse(ApiModel):
    recipient_wallet: str = Field(..., alias="recipientWallet")
    content_id: Optional[str] = Field(None, alias="contentId")
    platform_fee_bps: int = Field(..., alias="platformFeeBps")
    custom_fee_bps: int = Field(..., alias="customFeeBps")
    fee_recipient: Optional[str] = Field(None, alias="feeRecipient")
    version: Optional[int] = None


class FeeChangeResponse(ApiModel):
    version: int
    old_fee_bps: Optional[int] = Field(None, alias="oldFeeBps")
    new_fee_bps: int = Field(..., alias="newFeeBps")
    changed_by_wallet: str = Field(..., alias="changedByWallet")
    changed_at: Optional[str] = Field(None, alias="changedAt")

    @classmethod
    def from_change(cls, change) -> "FeeChangeResponse":
        return cls(
            version=change.version,
            old_fee_bps=change.old_fee_bps,
            new_fee_bps=change.new_fee_bps,
            changed_by_wallet=change.changed_by_wallet,
            changed_at=_iso(change.changed_at),
        )


class FeePreviewRequest(ApiModel):
    """Breakdown of a hypothetical tip under a creator's current fees."""
    amount: Union[int, float, str]
    network: Network
    recipient_wallet: str = Field(..., alias="recipientWallet")
    content_id: Optional[str] = Field(None, alias="contentId", max_length=128)


class TopCreatorResponse(ApiModel):
    rank: int
    network: str
    wallet: str
    tip_count: int = Field(..., alias="tipCount")
    total_received: str = Field(..., alias="totalReceived")
    total_creator_amount: str = Field(..., alias="totalCreatorAmount")


class TopCreatorsResponse(ApiModel):
    creators: List[TopCreatorResponse]
    total: int


def bps_to_percent(bps: int) -> str:
    """300 -> '3.00'"""
    return f"{bps // 100}.{bps % 100:02d}"
