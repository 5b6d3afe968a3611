"""
Custom fee endpoints: creators configure a per-content custom fee on top of
the platform fee, and anyone can preview the split a tip would get.

Security:
    Wallet auth on fee changes (JWT subject must match the path wallet)
    Address validation on all wallet params
    Rate limiting on fee changes
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from domain.errors import NotFoundError
from domain.responses import ERROR_RESPONSES, success_response
from middleware.auth import require_wallet_auth
from middleware.rate_limit import rate_limit
from models import (
    EffectiveFeeConfigResponse,
    FeeChangeResponse,
    FeePreviewRequest,
    FeeSettingResponse,
    SetCustomFeeRequest,
)
from services import fee_registry
from services.fee_calculator import preview_breakdown
from services.settlement_service import coerce_amount
from utils.validators import validate_address, validated_wallet

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fees", tags=["fees"], responses=ERROR_RESPONSES)


# ── PUT /fees/{wallet}/content/{content_id} ────────────────────────

@router.put("/{wallet}/content/{content_id}", response_model=FeeSettingResponse)
async def set_custom_fee(
    request: SetCustomFeeRequest,
    content_id: str = Path(..., max_length=128),
    wallet: str = Depends(validated_wallet),
    acting_wallet: str = Depends(require_wallet_auth),
    db: AsyncSession = Depends(get_db),
    _rate=Depends(rate_limit(max_requests=30, window_seconds=60)),
):
    """
    Set (or replace) the custom fee for one content item.

    Applies to tips settled after this call; already settled tips keep the
    split they were settled under.
    """
    setting = await fee_registry.set_custom_fee(
        db,
        acting_wallet=acting_wallet,
        recipient_wallet=wallet,
        content_id=content_id,
        basis_points=request.custom_fee_bps,
        content_type=request.content_type,
        fee_recipient=request.fee_recipient,
        transaction_hash=request.transaction_hash,
    )
    await db.commit()
    return FeeSettingResponse.from_setting(setting)


# ── GET /fees/{wallet}/content/{content_id} ────────────────────────

@router.get("/{wallet}/content/{content_id}", response_model=EffectiveFeeConfigResponse)
async def get_effective_fee(
    content_id: str = Path(..., max_length=128),
    wallet: str = Depends(validated_wallet),
    db: AsyncSession = Depends(get_db),
):
    """Effective fee configuration for tips to this content (custom fee 0 if unset)."""
    config = await fee_registry.get_effective_config(db, wallet, content_id)
    return EffectiveFeeConfigResponse(
        recipient_wallet=wallet,
        content_id=content_id,
        platform_fee_bps=config.platform_fee_bps,
        custom_fee_bps=config.custom_fee_bps,
        fee_recipient=config.fee_recipient,
        version=config.version,
    )


# ── GET /fees/{wallet}/content/{content_id}/history ────────────────

@router.get("/{wallet}/content/{content_id}/history")
async def get_fee_history(
    content_id: str = Path(..., max_length=128),
    wallet: str = Depends(validated_wallet),
    db: AsyncSession = Depends(get_db),
):
    changes = await fee_registry.get_fee_history(db, wallet, content_id)
    if not changes:
        raise NotFoundError("Fee setting", f"{wallet[:8]}.../{content_id}")
    return success_response(
        [FeeChangeResponse.from_change(c).model_dump(by_alias=True) for c in changes]
    )


# ── GET /fees/{wallet} ─────────────────────────────────────────────

@router.get("/{wallet}")
async def list_fee_settings(
    wallet: str = Depends(validated_wallet),
    content_type: Optional[str] = Query(None, alias="contentType"),
    db: AsyncSession = Depends(get_db),
):
    """All custom fee settings of a creator."""
    settings_list = await fee_registry.list_fee_settings(db, wallet)
    if content_type:
        settings_list = [s for s in settings_list if s.content_type == content_type]
    return success_response(
        [FeeSettingResponse.from_setting(s).model_dump(by_alias=True) for s in settings_list],
        meta={"total": len(settings_list)},
    )


# ── POST /fees/preview ─────────────────────────────────────────────

@router.post("/preview")
async def preview_fee_split(
    request: FeePreviewRequest,
    db: AsyncSession = Depends(get_db),
):
    """Breakdown of a hypothetical tip under the creator's current fees. Nothing is persisted."""
    amount = coerce_amount(request.amount)
    recipient = validate_address(request.network, request.recipient_wallet, field="recipientWallet")
    config = await fee_registry.get_effective_config(db, recipient, request.content_id)
    return success_response(preview_breakdown(amount, config, request.network))
