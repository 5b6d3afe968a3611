"""
Fee split calculator: pure, deterministic three-way split of a tip.

Rule:
    platform   = floor(amount * platform_fee_bps / 10_000)
    custom_fee = floor(amount * custom_fee_bps / 10_000)
    creator    = amount - platform - custom_fee

Each fee component is truncated; the rounding dust always goes to the
creator. Everything is integer arithmetic on base units (lamports, wei,
drops, microAlgos); floats never enter the computation, not even when
rendering human-readable previews.
"""
from dataclasses import dataclass
from typing import Optional

from domain.constants import FEE_DENOMINATOR, MAX_CUSTOM_FEE_BPS, MIN_CUSTOM_FEE_BPS
from domain.enums import Network
from domain.errors import FeeConfigInvalidError, InvalidAmountError


@dataclass(frozen=True)
class FeeConfig:
    """Effective fee configuration for one recipient / content item."""
    platform_fee_bps: int
    custom_fee_bps: int = 0
    recipient_id: Optional[str] = None
    content_id: Optional[str] = None
    fee_recipient: Optional[str] = None  # wallet receiving the custom fee; None => creator
    version: Optional[int] = None        # registry version, None when no custom fee is stored


@dataclass(frozen=True)
class SplitResult:
    platform_amount: int
    custom_fee_amount: int
    creator_amount: int

    @property
    def total(self) -> int:
        return self.platform_amount + self.custom_fee_amount + self.creator_amount


def require_positive_amount(amount) -> int:
    """Return ``amount`` if it is a positive int, else raise InvalidAmountError."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(
            f"Tip amount must be an integer number of base units, got {type(amount).__name__}"
        )
    if amount <= 0:
        raise InvalidAmountError(f"Tip amount must be greater than 0, got {amount}")
    return amount


def _require_bps(name: str, value, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise FeeConfigInvalidError(
            f"{name} must be an integer in [{low}, {high}], got {value!r}",
            details={name: value},
        )
    return value


def compute(amount: int, config: FeeConfig) -> SplitResult:
    """
    Split ``amount`` according to ``config``.

    Raises:
        InvalidAmountError: amount is not a positive int
        FeeConfigInvalidError: bps out of range, or platform + custom fee
            leaves the creator nothing
    """
    amount = require_positive_amount(amount)
    platform_bps = _require_bps("platform_fee_bps", config.platform_fee_bps, 0, FEE_DENOMINATOR)
    custom_bps = _require_bps("custom_fee_bps", config.custom_fee_bps, MIN_CUSTOM_FEE_BPS, MAX_CUSTOM_FEE_BPS)

    if platform_bps + custom_bps >= FEE_DENOMINATOR:
        raise FeeConfigInvalidError(
            f"Fees total {platform_bps + custom_bps} bps; creator share would be non-positive",
            details={"platform_fee_bps": platform_bps, "custom_fee_bps": custom_bps},
        )

    platform_amount = amount * platform_bps // FEE_DENOMINATOR
    custom_fee_amount = amount * custom_bps // FEE_DENOMINATOR
    creator_amount = amount - platform_amount - custom_fee_amount

    return SplitResult(
        platform_amount=platform_amount,
        custom_fee_amount=custom_fee_amount,
        creator_amount=creator_amount,
    )


def to_display(amount: int, network: Network) -> str:
    """Render base units as a decimal string of the native token (1000000000 lamports -> '1')."""
    sign = "-" if amount < 0 else ""
    whole, fraction = divmod(abs(amount), 10 ** network.decimals)
    fraction_text = str(fraction).rjust(network.decimals, "0").rstrip("0")
    return f"{sign}{whole}.{fraction_text}" if fraction_text else f"{sign}{whole}"


def preview_breakdown(amount: int, config: FeeConfig, network: Network) -> dict:
    """
    Tip breakdown shown to a creator while configuring a custom fee.

    Returns base-unit integers plus decimal strings. ``totalCreatorAmount``
    includes the custom fee when the creator keeps it.
    """
    split = compute(amount, config)
    creator_keeps_custom = config.fee_recipient in (None, config.recipient_id)
    total_creator = split.creator_amount + (split.custom_fee_amount if creator_keeps_custom else 0)
    return {
        "amount": str(amount),
        "platformFeeBps": config.platform_fee_bps,
        "customFeeBps": config.custom_fee_bps,
        "platformAmount": str(split.platform_amount),
        "customFeeAmount": str(split.custom_fee_amount),
        "creatorAmount": str(split.creator_amount),
        "totalCreatorAmount": str(total_creator),
        "display": {
            "symbol": network.token_symbol,
            "amount": to_display(amount, network),
            "platformFee": to_display(split.platform_amount, network),
            "customFee": to_display(split.custom_fee_amount, network),
            "creatorAmount": to_display(split.creator_amount, network),
            "totalCreatorAmount": to_display(total_creator, network),
        },
    }
