"""
Tip settlement ledger: applies a computed fee split exactly once per tip.

State machine (per tip id):
    pending -> settled    backend confirmed every transfer
    pending -> rejected   validation or backend failure; nothing moved
Terminal states never change again.

Guarantees:
    - Idempotent: a settled tip id returns the stored record and moves no
      funds; the unique constraint on tip_id resolves concurrent duplicates.
    - Atomic: record, ledger entries and balance credits commit together or
      not at all.
    - Checked: the split must sum to the amount with a positive creator
      share before anything is written.

This service owns its transaction (commit / rollback) because a failed
settlement must still persist its rejected record.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db_models import TipRecord
from domain.constants import MEMO_MAX_LENGTH
from domain.enums import Network, TipDirection, TipStatus, TransferRole
from domain.errors import (
    DomainError,
    DuplicateTipError,
    InvalidAmountError,
    MemoTooLongError,
    NotFoundError,
    SettlementFailedError,
    SplitInvariantViolationError,
    TipAlreadyRejectedError,
    ValidationError,
)
from services import fee_calculator, fee_registry
from services.fee_calculator import FeeConfig, SplitResult
from services.ledger_backend import DatabaseLedgerBackend, SettlementBackend, Transfer
from utils.validators import parse_network, validate_address, validate_tip_id

logger = logging.getLogger(__name__)

_INTEGER_RE = re.compile(r"^[+-]?[0-9]+$")


_backend: SettlementBackend = DatabaseLedgerBackend()


def get_backend() -> SettlementBackend:
    return _backend


def set_backend(backend: SettlementBackend) -> SettlementBackend:
    """Swap the settlement backend; returns the previous one."""
    global _backend
    previous, _backend = _backend, backend
    return previous


@dataclass(frozen=True)
class ObservedTip:
    """A chain transfer the surrounding application has already verified."""
    tip_id: str
    network: Network
    from_address: str
    to_address: str
    amount: object  # validated here, may arrive as anything
    content_id: Optional[str] = None
    memo: Optional[str] = None
    compensates_tip_id: Optional[str] = None


def coerce_amount(value) -> int:
    """
    Parse a submitted amount into base units.

    Accepts ints and digit strings (JSON cannot carry wei-sized ints safely).
    Floats, bools and decimal strings are rejected as non-integral.
    """
    if isinstance(value, bool):
        raise InvalidAmountError("Tip amount must be an integer number of base units, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if _INTEGER_RE.match(text):
            return int(text)
    raise InvalidAmountError(f"Tip amount must be an integer number of base units, got {value!r}")


def check_split_invariant(amount: int, split: SplitResult) -> None:
    parts = (split.platform_amount, split.custom_fee_amount, split.creator_amount)
    if any(isinstance(p, bool) or not isinstance(p, int) or p < 0 for p in parts) \
            or split.creator_amount == 0 or split.total != amount:
        details = {
            "amount": str(amount),
            "platformAmount": str(split.platform_amount),
            "customFeeAmount": str(split.custom_fee_amount),
            "creatorAmount": str(split.creator_amount),
        }
        logger.critical(f"🚨 SPLIT INVARIANT VIOLATION, settlement aborted: {details}")
        raise SplitInvariantViolationError(
            "Split does not account for the tip amount exactly; settlement aborted.",
            details=details,
        )


def _memo_fits(memo: Optional[str]) -> bool:
    # Counted in UTF-8 bytes, like the on-chain memo check.
    return memo is None or len(memo.encode("utf-8")) <= MEMO_MAX_LENGTH


def build_transfers(
    split: SplitResult,
    *,
    platform_address: str,
    creator_address: str,
    fee_recipient: Optional[str] = None,
) -> list[Transfer]:
    """Settlement instructions for a split. Zero-amount legs are omitted."""
    legs = [
        Transfer(TransferRole.PLATFORM, platform_address, split.platform_amount),
        Transfer(TransferRole.CUSTOM_FEE, fee_recipient or creator_address, split.custom_fee_amount),
        Transfer(TransferRole.CREATOR, creator_address, split.creator_amount),
    ]
    return [leg for leg in legs if leg.amount > 0]


async def get_tip(db: AsyncSession, tip_id: str) -> Optional[TipRecord]:
    result = await db.execute(
        select(TipRecord)
        .where(TipRecord.tip_id == tip_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def require_tip(db: AsyncSession, tip_id: str) -> TipRecord:
    tip = await get_tip(db, tip_id)
    if tip is None:
        raise NotFoundError("Tip", tip_id)
    return tip


def _resolve_existing(existing: TipRecord, raise_on_duplicate: bool) -> TipRecord:
    if existing.status == TipStatus.SETTLED.value:
        logger.info(f"Duplicate tip {existing.tip_id[:16]}...: returning settled record, no transfer")
        if raise_on_duplicate:
            raise DuplicateTipError(existing.tip_id, details={"settlementRef": existing.settlement_ref})
        return existing
    raise TipAlreadyRejectedError(
        existing.tip_id,
        details={"rejectionCode": existing.rejection_code, "reason": existing.rejection_reason},
    )


async def _record_rejection(
    db: AsyncSession,
    *,
    tip_id: str,
    network: Network,
    from_address: str,
    to_address: str,
    amount,
    error: DomainError,
    content_id: Optional[str] = None,
    memo: Optional[str] = None,
) -> TipRecord:
    """Persist a rejected TipRecord in its own transaction."""
    await db.rollback()
    existing = await get_tip(db, tip_id)
    if existing is not None:
        # Lost a race to another submission of the same tip id
        return existing

    record = TipRecord(
        tip_id=tip_id,
        network=network.value,
        from_address=(from_address or "")[:64],
        to_address=(to_address or "")[:64],
        amount=amount if isinstance(amount, int) and not isinstance(amount, bool) else None,
        content_id=content_id,
        memo=memo,
        status=TipStatus.PENDING.value,
    )
    record.mark_rejected(error.code, error.message)
    db.add(record)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return await require_tip(db, tip_id)

    logger.warning(f"Tip rejected {tip_id[:16]}...: [{error.code}] {error.message}")
    return record


async def apply(
    db: AsyncSession,
    *,
    tip_id: str,
    network: Network,
    from_address: str,
    to_address: str,
    amount,
    split: SplitResult,
    fee_config: Optional[FeeConfig] = None,
    content_id: Optional[str] = None,
    memo: Optional[str] = None,
    compensates_tip_id: Optional[str] = None,
    raise_on_duplicate: bool = False,
) -> TipRecord:
    """
    Apply ``split`` for tip ``tip_id`` as one atomic multi-party transfer.

    Returns:
        The settled TipRecord (the stored one when tip_id was already settled).

    Raises:
        InvalidAmountError, InvalidAddressError, MemoTooLongError,
        ValidationError: bad input; a rejected record is persisted first
        SplitInvariantViolationError: split does not sum to amount (fatal)
        SettlementFailedError: backend failed; rejected record persisted
        DuplicateTipError: already settled and raise_on_duplicate=True
        TipAlreadyRejectedError: tip_id was rejected earlier
    """
    network = parse_network(network)
    validate_tip_id(network, tip_id)

    existing = await get_tip(db, tip_id)
    if existing is not None:
        return _resolve_existing(existing, raise_on_duplicate)

    platform_address = settings.platform_wallet_for(network)
    fee_recipient = fee_config.fee_recipient if fee_config else None

    try:
        amount = coerce_amount(amount)
        if amount <= 0:
            raise InvalidAmountError(f"Tip amount must be greater than 0, got {amount}")
        validate_address(network, from_address, field="from_address")
        validate_address(network, to_address, field="to_address")
        if fee_recipient:
            validate_address(network, fee_recipient, field="fee_recipient")
        if not platform_address:
            raise ValidationError(f"Platform wallet not configured for {network.value}", field="network")
        if not _memo_fits(memo):
            raise MemoTooLongError(f"Memo is too long (max {MEMO_MAX_LENGTH} bytes of UTF-8)")
        if compensates_tip_id:
            original = await get_tip(db, compensates_tip_id)
            if original is None or not original.is_settled:
                raise ValidationError(
                    f"Compensated tip must exist and be settled: {compensates_tip_id}",
                    field="compensates_tip_id",
                )
        check_split_invariant(amount, split)
    except DomainError as e:
        await _record_rejection(
            db,
            tip_id=tip_id,
            network=network,
            from_address=from_address,
            to_address=to_address,
            amount=amount,
            error=e,
            content_id=content_id,
            memo=memo if _memo_fits(memo) else None,
        )
        raise

    transfers = build_transfers(
        split,
        platform_address=platform_address,
        creator_address=to_address,
        fee_recipient=fee_recipient,
    )

    record = TipRecord(
        tip_id=tip_id,
        network=network.value,
        from_address=from_address,
        to_address=to_address,
        content_id=content_id,
        memo=memo,
        amount=amount,
        platform_amount=split.platform_amount,
        custom_fee_amount=split.custom_fee_amount,
        creator_amount=split.creator_amount,
        platform_fee_bps=fee_config.platform_fee_bps if fee_config else None,
        custom_fee_bps=fee_config.custom_fee_bps if fee_config else None,
        fee_setting_version=fee_config.version if fee_config else None,
        platform_address=platform_address,
        fee_recipient_address=(fee_recipient or to_address) if split.custom_fee_amount else None,
        compensates_tip_id=compensates_tip_id,
        status=TipStatus.PENDING.value,
    )

    backend = get_backend()
    try:
        db.add(record)
        await db.flush()
        settlement_ref = await backend.execute(
            db, tip_id=tip_id, network=network, transfers=transfers,
        )
        if not settlement_ref:
            raise RuntimeError(f"{backend.name} backend returned no confirmation")
        record.mark_settled(settlement_ref)
        await db.commit()
    except IntegrityError:
        # Concurrent submission of the same tip id won the insert
        await db.rollback()
        winner = await get_tip(db, tip_id)
        if winner is None:
            raise
        return _resolve_existing(winner, raise_on_duplicate)
    except Exception as e:
        logger.error(f"Settlement backend '{backend.name}' failed for {tip_id[:16]}...: {e}", exc_info=True)
        failure = SettlementFailedError(
            "Settlement could not be applied; no funds moved.",
            details={"tipId": tip_id},
        )
        await _record_rejection(
            db,
            tip_id=tip_id,
            network=network,
            from_address=from_address,
            to_address=to_address,
            amount=amount,
            error=failure,
            content_id=content_id,
            memo=memo,
        )
        raise failure from e

    logger.info(
        f"Tip settled {tip_id[:16]}...: {amount} {network.token_symbol} base units, "
        f"platform {split.platform_amount}, custom {split.custom_fee_amount}, "
        f"creator {split.creator_amount} ({settlement_ref})"
    )
    return record


async def settle_tip(
    db: AsyncSession,
    observed: ObservedTip,
    *,
    raise_on_duplicate: bool = False,
) -> TipRecord:
    """
    Settle an observed tip: registry lookup, split computation, apply.

    Zero or malformed amounts are rejected before any split is attempted.
    """
    network = parse_network(observed.network)
    validate_tip_id(network, observed.tip_id)

    existing = await get_tip(db, observed.tip_id)
    if existing is not None:
        return _resolve_existing(existing, raise_on_duplicate)

    reject_kwargs = dict(
        tip_id=observed.tip_id,
        network=network,
        from_address=observed.from_address,
        to_address=observed.to_address,
        content_id=observed.content_id,
    )
    try:
        amount = coerce_amount(observed.amount)
        fee_calculator.require_positive_amount(amount)
    except InvalidAmountError as e:
        await _record_rejection(db, amount=None, error=e, **reject_kwargs)
        raise

    try:
        validate_address(network, observed.to_address, field="to_address")
        config = await fee_registry.get_effective_config(db, observed.to_address, observed.content_id)
        split = fee_calculator.compute(amount, config)
    except DomainError as e:
        await _record_rejection(db, amount=amount, error=e, **reject_kwargs)
        raise

    return await apply(
        db,
        tip_id=observed.tip_id,
        network=network,
        from_address=observed.from_address,
        to_address=observed.to_address,
        amount=amount,
        split=split,
        fee_config=config,
        content_id=observed.content_id,
        memo=observed.memo,
        compensates_tip_id=observed.compensates_tip_id,
        raise_on_duplicate=raise_on_duplicate,
    )


async def list_tips_for_wallet(
    db: AsyncSession,
    wallet: str,
    direction: TipDirection = TipDirection.ALL,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list, int]:
    """Tips sent and/or received by a wallet, newest first, with total count."""
    if direction is TipDirection.SENT:
        condition = TipRecord.from_address == wallet
    elif direction is TipDirection.RECEIVED:
        condition = TipRecord.to_address == wallet
    else:
        condition = or_(TipRecord.from_address == wallet, TipRecord.to_address == wallet)

    total = (await db.execute(select(func.count(TipRecord.id)).where(condition))).scalar() or 0
    result = await db.execute(
        select(TipRecord)
        .where(condition)
        .order_by(TipRecord.created_at.desc(), TipRecord.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return result.scalars().all(), total


async def get_top_creators(
    db: AsyncSession,
    network: Optional[Network] = None,
    limit: int = 20,
) -> list[dict]:
    """
    Recipients ranked by total settled tip volume.

    Amounts are summed in Python: they are stored as decimal strings and
    may exceed 64-bit integers.
    """
    query = select(
        TipRecord.network, TipRecord.to_address, TipRecord.amount, TipRecord.creator_amount,
    ).where(TipRecord.status == TipStatus.SETTLED.value)
    if network is not None:
        query = query.where(TipRecord.network == network.value)

    totals: dict[tuple[str, str], dict] = {}
    for row in (await db.execute(query)).all():
        key = (row.network, row.to_address)
        entry = totals.setdefault(key, {
            "network": row.network,
            "wallet": row.to_address,
            "tipCount": 0,
            "totalReceived": 0,
            "totalCreatorAmount": 0,
        })
        entry["tipCount"] += 1
        entry["totalReceived"] += row.amount
        entry["totalCreatorAmount"] += row.creator_amount

    ranked = sorted(
        totals.values(),
        key=lambda e: (e["totalReceived"], e["tipCount"]),
        reverse=True,
    )[:limit]
    for rank, entry in enumerate(ranked, start=1):
        entry["rank"] = rank
        entry["totalReceived"] = str(entry["totalReceived"])
        entry["totalCreatorAmount"] = str(entry["totalCreatorAmount"])
    return ranked
