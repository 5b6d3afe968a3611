"""
Domain enums (minimal set used for clarity in services).
"""

from enum import Enum


class TipStatus(str, Enum):
    PENDING = "pending"
    SETTLED = "settled"
    REJECTED = "rejected"


class TransferRole(str, Enum):
    PLATFORM = "platform"
    CUSTOM_FEE = "custom_fee"
    CREATOR = "creator"


class ContentType(str, Enum):
    ASSET = "asset"
    LIVE_STREAM = "live_stream"
    FVM_VIDEO = "fvm_video"


class TipDirection(str, Enum):
    SENT = "sent"
    RECEIVED = "received"
    ALL = "all"


class AddressFamily(str, Enum):
    SOLANA = "solana"
    EVM = "evm"
    ALGORAND = "algorand"
    XRP = "xrp"


class Network(str, Enum):
    SOLANA = "solana"
    ETHEREUM = "ethereum"
    POLYGON = "polygon"
    BASE = "base"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"
    ALGORAND = "algorand"
    XRP = "xrp"

    @property
    def address_family(self) -> AddressFamily:
        if self is Network.SOLANA:
            return AddressFamily.SOLANA
        if self is Network.ALGORAND:
            return AddressFamily.ALGORAND
        if self is Network.XRP:
            return AddressFamily.XRP
        return AddressFamily.EVM

    @property
    def decimals(self) -> int:
        """Decimals of the native asset (lamports, wei, microAlgos, drops)."""
        return _DECIMALS[self.address_family]

    @property
    def token_symbol(self) -> str:
        return _SYMBOLS[self]


_DECIMALS = {
    AddressFamily.SOLANA: 9,
    AddressFamily.EVM: 18,
    AddressFamily.ALGORAND: 6,
    AddressFamily.XRP: 6,
}

_SYMBOLS = {
    Network.SOLANA: "SOL",
    Network.ETHEREUM: "ETH",
    Network.POLYGON: "MATIC",
    Network.BASE: "ETH",
    Network.ARBITRUM: "ETH",
    Network.OPTIMISM: "ETH",
    Network.ALGORAND: "ALGO",
    Network.XRP: "XRP",
}
