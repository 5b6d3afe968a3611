"""
Fee Config Registry: per-creator, per-content custom fee settings.

Rules:
    Custom fee is 0 - 5000 bps (0% - 50%) inclusive.
    Only the recipient wallet itself may set its fee (last writer wins).
    The platform fee is not stored here; it comes from settings and is
    merged in by get_effective_config().
    Writes never touch TipRecords: settled tips keep the fee snapshot they
    were split under.
"""
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import insert_for
from db_models import FeeSetting, FeeSettingChange, utcnow
from domain.constants import CONTENT_ID_MAX_LENGTH, MAX_CUSTOM_FEE_BPS, MIN_CUSTOM_FEE_BPS
from domain.enums import ContentType
from domain.errors import FeeOutOfBoundsError, PermissionDeniedError, ValidationError, InvalidAddressError
from services.fee_calculator import FeeConfig
from utils.validators import address_family_of

logger = logging.getLogger(__name__)


def validate_fee_bps(basis_points) -> int:
    """Return ``basis_points`` if it is an int within the custom fee bounds."""
    if isinstance(basis_points, bool) or not isinstance(basis_points, int):
        raise FeeOutOfBoundsError(
            f"Custom fee must be an integer number of basis points, got {basis_points!r}"
        )
    if not MIN_CUSTOM_FEE_BPS <= basis_points <= MAX_CUSTOM_FEE_BPS:
        raise FeeOutOfBoundsError(
            f"Custom fee must be between {MIN_CUSTOM_FEE_BPS} and {MAX_CUSTOM_FEE_BPS} bps "
            f"(0% - 50%), got {basis_points}",
            details={"basis_points": basis_points},
        )
    return basis_points


def _validate_content_id(content_id: str) -> str:
    if not content_id or not content_id.strip():
        raise ValidationError("content id is required", field="content_id")
    if len(content_id) > CONTENT_ID_MAX_LENGTH:
        raise ValidationError(f"expected at most {CONTENT_ID_MAX_LENGTH} characters", field="content_id")
    return content_id


async def _get_setting(db: AsyncSession, recipient_wallet: str, content_id: str) -> Optional[FeeSetting]:
    result = await db.execute(
        select(FeeSetting)
        .where(
            FeeSetting.recipient_wallet == recipient_wallet,
            FeeSetting.content_id == content_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def set_custom_fee(
    db: AsyncSession,
    *,
    acting_wallet: str,
    recipient_wallet: str,
    content_id: str,
    basis_points: int,
    content_type: ContentType = ContentType.ASSET,
    fee_recipient: Optional[str] = None,
    transaction_hash: Optional[str] = None,
) -> FeeSetting:
    """
    Create or replace the custom fee for one content item.

    All validation runs before any write, so a rejected call leaves the
    stored configuration untouched. The caller commits.

    Raises:
        FeeOutOfBoundsError: basis_points outside [0, 5000]
        PermissionDeniedError: acting_wallet is not the recipient
        ValidationError / InvalidAddressError: bad content id or fee recipient
    """
    basis_points = validate_fee_bps(basis_points)
    if not acting_wallet or acting_wallet != recipient_wallet:
        logger.warning(
            f"Fee change refused: {str(acting_wallet)[:8]}... tried to set fee for {recipient_wallet[:8]}..."
        )
        raise PermissionDeniedError("Only the recipient wallet can change its custom fee.")
    content_id = _validate_content_id(content_id)
    if fee_recipient is not None:
        family = address_family_of(fee_recipient)
        if family is None or family != address_family_of(recipient_wallet):
            raise InvalidAddressError(
                "Fee recipient must be a wallet on the same network family as the creator",
                field="fee_recipient",
            )

    existing = await _get_setting(db, recipient_wallet, content_id)
    old_bps = existing.custom_fee_bps if existing else None

    # Ensure row exists (atomic upsert pattern), then bump it in place
    now = utcnow()
    await db.execute(
        insert_for(db, FeeSetting)
        .values(
            recipient_wallet=recipient_wallet,
            content_id=content_id,
            content_type=ContentType(content_type).value,
            custom_fee_bps=basis_points,
            set_by_wallet=acting_wallet,
            version=0,
            created_at=now,
            updated_at=now,
        )
        .on_conflict_do_nothing(index_elements=["recipient_wallet", "content_id"])
    )
    await db.execute(
        update(FeeSetting)
        .where(
            FeeSetting.recipient_wallet == recipient_wallet,
            FeeSetting.content_id == content_id,
        )
        .values(
            content_type=ContentType(content_type).value,
            custom_fee_bps=basis_points,
            fee_recipient_wallet=fee_recipient,
            set_by_wallet=acting_wallet,
            transaction_hash=transaction_hash,
            synced_to_chain=transaction_hash is not None,
            version=FeeSetting.version + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )

    setting = await _get_setting(db, recipient_wallet, content_id)
    db.add(
        FeeSettingChange(
            recipient_wallet=recipient_wallet,
            content_id=content_id,
            old_fee_bps=old_bps,
            new_fee_bps=basis_points,
            version=setting.version,
            changed_by_wallet=acting_wallet,
            changed_at=now,
        )
    )
    await db.flush()

    logger.info(
        f"Custom fee: {recipient_wallet[:8]}... content={content_id} "
        f"{old_bps if old_bps is not None else '-'} -> {basis_points} bps (v{setting.version})"
    )
    return setting


async def get_effective_config(
    db: AsyncSession,
    recipient_wallet: str,
    content_id: Optional[str] = None,
) -> FeeConfig:
    """
    Effective fee configuration for a tip to ``recipient_wallet``.

    A missing content id or missing setting means "no custom fee", never an
    error.
    """
    setting = None
    if content_id:
        setting = await _get_setting(db, recipient_wallet, content_id)

    if setting is None:
        return FeeConfig(
            platform_fee_bps=settings.platform_fee_bps,
            custom_fee_bps=0,
            recipient_id=recipient_wallet,
            content_id=content_id,
        )
    return FeeConfig(
        platform_fee_bps=settings.platform_fee_bps,
        custom_fee_bps=setting.custom_fee_bps,
        recipient_id=recipient_wallet,
        content_id=content_id,
        fee_recipient=setting.fee_recipient_wallet,
        version=setting.version,
    )


async def list_fee_settings(db: AsyncSession, recipient_wallet: str) -> list:
    """All custom fee settings owned by a creator, most recently changed first."""
    result = await db.execute(
        select(FeeSetting)
        .where(FeeSetting.recipient_wallet == recipient_wallet)
        .order_by(FeeSetting.updated_at.desc(), FeeSetting.id.desc())
    )
    return result.scalars().all()


async def get_fee_history(db: AsyncSession, recipient_wallet: str, content_id: str) -> list:
    """Audit trail of fee changes for one content item, oldest first."""
    result = await db.execute(
        select(FeeSettingChange)
        .where(
            FeeSettingChange.recipient_wallet == recipient_wallet,
            FeeSettingChange.content_id == content_id,
        )
        .order_by(FeeSettingChange.version.asc())
    )
    return result.scalars().all()
