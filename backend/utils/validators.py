"""
Input validation utilities for the Tip Settlement service.

Provides reusable validators for wallet addresses and transaction ids on
every supported network family:
    - Solana:   base58, 32-byte public keys / 64-byte signatures
    - EVM:      0x + 40 hex address / 0x + 64 hex transaction hash
    - Algorand: 58-char checksummed address / 52-char base32 tx id
    - XRP:      classic r-address (XRP base58 alphabet, checksummed) / 64 hex tx hash
"""
import re

import base58
from algosdk import encoding
from fastapi import Path

from domain.constants import TIP_ID_MAX_LENGTH
from domain.enums import AddressFamily, Network
from domain.errors import InvalidAddressError, ValidationError

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_EVM_TX_HASH_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")
_ALGORAND_TX_ID_RE = re.compile(r"^[A-Z2-7]{52}$")
_XRP_TX_HASH_RE = re.compile(r"^[a-fA-F0-9]{64}$")

# Classic XRP Ledger address: version byte 0x00 followed by a 20-byte account id
_XRP_ACCOUNT_ID_LENGTH = 20


def _base58_length(value: str) -> int | None:
    try:
        return len(base58.b58decode(value))
    except ValueError:
        return None


def _is_xrp_address(address: str) -> bool:
    if not address.startswith("r") or not 25 <= len(address) <= 35:
        return False
    try:
        payload = base58.b58decode_check(address, alphabet=base58.XRP_ALPHABET)
    except ValueError:
        return False
    return len(payload) == 1 + _XRP_ACCOUNT_ID_LENGTH and payload[0] == 0


def is_valid_address(family: AddressFamily, address: str) -> bool:
    if not address or not isinstance(address, str):
        return False
    if family is AddressFamily.EVM:
        return bool(_EVM_ADDRESS_RE.match(address))
    if family is AddressFamily.SOLANA:
        return 32 <= len(address) <= 44 and _base58_length(address) == 32
    if family is AddressFamily.XRP:
        return _is_xrp_address(address)
    return len(address) == 58 and encoding.is_valid_address(address)


def address_family_of(address: str) -> AddressFamily | None:
    """Guess which network family an address belongs to (None if none)."""
    for family in (AddressFamily.EVM, AddressFamily.ALGORAND, AddressFamily.XRP, AddressFamily.SOLANA):
        if is_valid_address(family, address):
            return family
    return None


def parse_network(value) -> Network:
    """Coerce a network name (case-insensitive) to Network."""
    if isinstance(value, Network):
        return value
    try:
        return Network(str(value).strip().lower())
    except ValueError:
        supported = ", ".join(n.value for n in Network)
        raise ValidationError(f"Unsupported network: {value}. Supported networks: {supported}", field="network")


def validate_address(network: Network, address: str, field: str = "address") -> str:
    """
    Validate a wallet address for ``network``.

    Returns:
        The validated address (unchanged)

    Raises:
        InvalidAddressError (400) if the address is malformed
    """
    if not address:
        raise InvalidAddressError("Wallet address is required", field=field)
    if not is_valid_address(network.address_family, address):
        raise InvalidAddressError(
            f"Invalid {network.value} address: {address[:12]}...",
            field=field,
        )
    return address


def validate_tip_id(network: Network, tip_id: str) -> str:
    """
    Validate that ``tip_id`` looks like a transaction id on ``network``.

    The tip id is the idempotency key, so it must come from the chain
    transaction itself rather than anything the client invents.
    """
    if not tip_id:
        raise InvalidAddressError("Tip id (transaction hash) is required", field="tip_id")
    if len(tip_id) > TIP_ID_MAX_LENGTH:
        raise InvalidAddressError(f"expected at most {TIP_ID_MAX_LENGTH} characters", field="tip_id")

    family = network.address_family
    if family is AddressFamily.EVM:
        ok = bool(_EVM_TX_HASH_RE.match(tip_id))
    elif family is AddressFamily.SOLANA:
        ok = _base58_length(tip_id) == 64
    elif family is AddressFamily.XRP:
        ok = bool(_XRP_TX_HASH_RE.match(tip_id))
    else:
        ok = bool(_ALGORAND_TX_ID_RE.match(tip_id))
    if not ok:
        raise InvalidAddressError(
            f"Invalid {network.value} transaction id: {tip_id[:16]}...",
            field="tip_id",
        )
    return tip_id


def validate_any_address(address: str, field: str = "wallet") -> str:
    """Validate an address without knowing its network up front."""
    if not address:
        raise InvalidAddressError("Wallet address is required", field=field)
    if address_family_of(address) is None:
        raise InvalidAddressError(f"Unrecognised wallet address: {address[:12]}...", field=field)
    return address


def validated_wallet(wallet: str = Path(..., description="Creator or tipper wallet address")) -> str:
    """FastAPI dependency for validating wallet path parameters."""
    return validate_any_address(wallet)
