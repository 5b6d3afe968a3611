"""
Tip settlement endpoints: intake, re-query, wallet history, balances and the leaderboard.

Intake is called by the service that observed and verified the chain
transfer; it is idempotent per tip id, so network retries are safe.
A caller that timed out must re-query GET /tips/{tip_id} rather than assume
the tip did not settle.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import Pagination, pagination_params, require_settlement_key
from domain.enums import Network, TipDirection
from domain.responses import ERROR_RESPONSES, paginated_response
from middleware.rate_limit import rate_limit
from models import BalanceResponse, SettleTipRequest, TipRecordResponse, TopCreatorResponse, TopCreatorsResponse
from services import settlement_service
from services.fee_calculator import to_display
from services.ledger_backend import get_balance
from utils.validators import validate_address, validated_wallet

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tips", tags=["tips"], responses=ERROR_RESPONSES)
leaderboard_router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])
balances_router = APIRouter(prefix="/balances", tags=["balances"], responses=ERROR_RESPONSES)

_settle_rate_limit = rate_limit(max_requests=120, window_seconds=60)


async def settlement_intake_guard(
    request: Request,
    keyed: bool = Depends(require_settlement_key),
):
    """Settlement key check; callers without the key are rate limited per IP."""
    if not keyed:
        await _settle_rate_limit(request)


# ── POST /tips/settle ──────────────────────────────────────────────

@router.post("/settle", response_model=TipRecordResponse)
async def settle_tip(
    request: SettleTipRequest,
    db: AsyncSession = Depends(get_db),
    _guard=Depends(settlement_intake_guard),
):
    """
    Settle a verified tip transfer.

    1. Looks up the creator's effective fee configuration
    2. Computes the platform / custom fee / creator split
    3. Applies all credits atomically and records the tip

    Replays of a settled tip id return the stored record with duplicate=true.
    """
    logger.info(f"Settlement request {request.tip_id[:16]}... on {request.network.value}")
    existing = await settlement_service.get_tip(db, request.tip_id)

    record = await settlement_service.settle_tip(
        db,
        settlement_service.ObservedTip(
            tip_id=request.tip_id,
            network=request.network,
            from_address=request.from_address,
            to_address=request.to_address,
            amount=request.amount,
            content_id=request.content_id,
            memo=request.memo,
            compensates_tip_id=request.compensates_tip_id,
        ),
    )
    return TipRecordResponse.from_record(record, duplicate=existing is not None and existing.is_settled)


# ── GET /tips/wallet/{wallet} ──────────────────────────────────────

@router.get("/wallet/{wallet}")
async def get_wallet_tips(
    wallet: str = Depends(validated_wallet),
    direction: TipDirection = Query(TipDirection.ALL),
    page: Pagination = Depends(pagination_params),
    db: AsyncSession = Depends(get_db),
):
    """Tip history for a wallet (sent, received or both), newest first."""
    tips, total = await settlement_service.list_tips_for_wallet(
        db, wallet, direction, limit=page["limit"], offset=page["offset"],
    )
    items = [TipRecordResponse.from_record(t).model_dump(by_alias=True) for t in tips]
    return paginated_response(items, limit=page["limit"], offset=page["offset"], total=total)


# ── GET /tips/{tip_id} ─────────────────────────────────────────────

@router.get("/{tip_id}", response_model=TipRecordResponse)
async def get_tip(
    tip_id: str = Path(..., max_length=128),
    db: AsyncSession = Depends(get_db),
):
    """Current state of a tip (settled, rejected) by its transaction id."""
    record = await settlement_service.require_tip(db, tip_id)
    return TipRecordResponse.from_record(record)


# ── GET /leaderboard/top-creators ──────────────────────────────────

@leaderboard_router.get("/top-creators", response_model=TopCreatorsResponse)
async def top_creators(
    network: Optional[Network] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Creators ranked by total settled tip volume."""
    ranked = await settlement_service.get_top_creators(db, network=network, limit=limit)
    return TopCreatorsResponse(
        creators=[TopCreatorResponse(**entry) for entry in ranked],
        total=len(ranked),
    )


# ── GET /balances/{network}/{wallet} ───────────────────────────────

@balances_router.get("/{network}/{wallet}", response_model=BalanceResponse)
async def wallet_balance(
    network: Network,
    wallet: str,
    db: AsyncSession = Depends(get_db),
):
    """Total credited to a wallet by settled tips on one network."""
    validate_address(network, wallet, field="wallet")
    amount = await get_balance(db, network, wallet)
    return BalanceResponse(
        network=network.value,
        wallet=wallet,
        amount=str(amount),
        display_amount=to_display(amount, network),
        token_symbol=network.token_symbol,
    )
