"""
SQLAlchemy ORM models for the Tip Settlement service.

Tables:
    tip_records          one row per tip id (pending → settled | rejected)
    ledger_entries       per-role credits produced by a settled tip
    balances             running credited total per (network, address)
    fee_settings         creator custom fee per content item (the registry)
    fee_setting_changes  append-only audit trail of registry writes

Amounts are integers in the asset's smallest unit. They are stored as decimal
strings: wei amounts overflow BIGINT and SQLite's NUMERIC falls back to REAL.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, ForeignKey,
    UniqueConstraint, Index, event, inspect,
)
from sqlalchemy.types import TypeDecorator

from database import Base
from domain.enums import TipStatus


def utcnow() -> datetime:
    # Naive UTC, matching what SQLite hands back for DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


class IntegerString(TypeDecorator):
    """Arbitrary-precision integer persisted as its decimal string."""

    impl = String(80)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"IntegerString expects int, got {type(value).__name__}")
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


class TipRecord(Base):
    """A tip observed on chain and its settlement outcome."""
    __tablename__ = "tip_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tip_id = Column(String(128), unique=True, nullable=False, index=True)  # tx hash / signature (dedup key)
    network = Column(String(20), nullable=False)
    from_address = Column(String(64), nullable=False, index=True)
    to_address = Column(String(64), nullable=False, index=True)
    content_id = Column(String(128), nullable=True, index=True)
    memo = Column(Text, nullable=True)

    amount = Column(IntegerString, nullable=True)  # null when the submitted amount was not an integer
    platform_amount = Column(IntegerString, nullable=True)
    custom_fee_amount = Column(IntegerString, nullable=True)
    creator_amount = Column(IntegerString, nullable=True)

    # Fee snapshot at settlement time; later registry edits never touch these
    platform_fee_bps = Column(Integer, nullable=True)
    custom_fee_bps = Column(Integer, nullable=True)
    fee_setting_version = Column(Integer, nullable=True)
    platform_address = Column(String(64), nullable=True)
    fee_recipient_address = Column(String(64), nullable=True)

    status = Column(String(20), nullable=False, default=TipStatus.PENDING.value, index=True)
    rejection_code = Column(String(50), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    settlement_ref = Column(String(128), nullable=True)  # backend confirmation
    compensates_tip_id = Column(String(128), nullable=True, index=True)

    created_at = Column(DateTime, default=utcnow, index=True)
    settled_at = Column(DateTime, nullable=True)

    __table_args__ = (
        # Leaderboard: group settled tips by recipient
        Index("ix_tip_records_status_to", "status", "to_address"),
    )

    _TRANSITIONS = {
        TipStatus.PENDING.value: {TipStatus.SETTLED.value, TipStatus.REJECTED.value},
        TipStatus.SETTLED.value: set(),
        TipStatus.REJECTED.value: set(),
    }

    def _transition(self, new_status: TipStatus) -> None:
        current = self.status or TipStatus.PENDING.value
        if new_status.value not in self._TRANSITIONS[current]:
            raise ValueError(f"Illegal tip transition {current} -> {new_status.value} ({self.tip_id})")
        self.status = new_status.value

    def mark_settled(self, settlement_ref: str) -> None:
        self._transition(TipStatus.SETTLED)
        self.settlement_ref = settlement_ref
        self.settled_at = utcnow()

    def mark_rejected(self, code: str, reason: str) -> None:
        self._transition(TipStatus.REJECTED)
        self.rejection_code = code
        self.rejection_reason = reason

    @property
    def is_settled(self) -> bool:
        return self.status == TipStatus.SETTLED.value


# Columns frozen once a tip is settled
_SETTLED_IMMUTABLE = (
    "tip_id", "network", "from_address", "to_address", "amount",
    "platform_amount", "custom_fee_amount", "creator_amount",
    "platform_fee_bps", "custom_fee_bps", "fee_setting_version",
    "platform_address", "fee_recipient_address", "status", "settlement_ref",
)


@event.listens_for(TipRecord, "before_update")
def _refuse_settled_mutation(mapper, connection, target):
    state = inspect(target)
    status_history = state.attrs.status.history
    was_settled = (
        status_history.deleted and status_history.deleted[0] == TipStatus.SETTLED.value
    ) or (not status_history.has_changes() and target.status == TipStatus.SETTLED.value)
    if not was_settled:
        return
    changed = [name for name in _SETTLED_IMMUTABLE if state.attrs[name].history.has_changes()]
    if changed:
        raise ValueError(
            f"Settled tip {target.tip_id} is immutable (attempted change: {', '.join(changed)}). "
            "Record a compensating tip instead."
        )


class LedgerEntry(Base):
    """One credit produced by a settled tip (platform, custom fee or creator)."""
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tip_id = Column(String(128), ForeignKey("tip_records.tip_id"), nullable=False, index=True)
    network = Column(String(20), nullable=False)
    address = Column(String(64), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # "platform" | "custom_fee" | "creator"
    amount = Column(IntegerString, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        # A tip can credit each role at most once
        UniqueConstraint("tip_id", "role", name="uq_ledger_tip_role"),
    )


class Balance(Base):
    """Credited total per address per network."""
    __tablename__ = "balances"

    id = Column(Integer, primary_key=True, autoincrement=True)
    network = Column(String(20), nullable=False)
    address = Column(String(64), nullable=False)
    amount = Column(IntegerString, nullable=False, default=0)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("network", "address", name="uq_balance_network_address"),
    )


# ════════════════════════════════════════════════════════════════════
# FEE CONFIG REGISTRY
# ════════════════════════════════════════════════════════════════════

class FeeSetting(Base):
    """
    Creator-configured custom fee for one content item.

    Owned by the recipient wallet; only that wallet may change it.
    version increments on every write so settled tips can cite the exact
    configuration they were split under.
    """
    __tablename__ = "fee_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_wallet = Column(String(64), nullable=False, index=True)
    content_id = Column(String(128), nullable=False)
    content_type = Column(String(20), nullable=False, default="asset")  # "asset" | "live_stream" | "fvm_video"
    custom_fee_bps = Column(Integer, nullable=False, default=0)
    fee_recipient_wallet = Column(String(64), nullable=True)  # null => creator keeps the custom fee
    set_by_wallet = Column(String(64), nullable=False)
    transaction_hash = Column(String(128), nullable=True)  # on-chain setVideoTipSettings tx, if any
    synced_to_chain = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("recipient_wallet", "content_id", name="uq_fee_setting_recipient_content"),
    )


class FeeSettingChange(Base):
    """Append-only audit row for every registry write."""
    __tablename__ = "fee_setting_changes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_wallet = Column(String(64), nullable=False)
    content_id = Column(String(128), nullable=False)
    old_fee_bps = Column(Integer, nullable=True)  # null on first write
    new_fee_bps = Column(Integer, nullable=False)
    version = Column(Integer, nullable=False)
    changed_by_wallet = Column(String(64), nullable=False)
    changed_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_fee_changes_recipient_content", "recipient_wallet", "content_id", "version"),
    )
