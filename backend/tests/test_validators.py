"""
Tests for address and transaction id validation utilities.

Tests: is_valid_address, validate_address, validate_tip_id, parse_network,
validated_wallet.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
from fastapi import HTTPException

from conftest import (
    INVALID_WALLET_BAD_CHECKSUM,
    INVALID_WALLET_SHORT,
    VALID_WALLET_1,
    VALID_WALLET_2,
    algorand_tx_id,
    evm_address,
    evm_tx_hash,
    solana_address,
    solana_signature,
    xrp_address,
    xrp_tx_hash,
)
from domain.enums import AddressFamily, Network
from domain.errors import InvalidAddressError, ValidationError
from utils.validators import (
    address_family_of,
    is_valid_address,
    parse_network,
    validate_address,
    validate_tip_id,
    validated_wallet,
)


class TestAlgorandAddress:
    """Algorand addresses are checksummed by algosdk."""

    @pytest.mark.unit
    def test_valid_address_passes(self):
        assert validate_address(Network.ALGORAND, VALID_WALLET_1) == VALID_WALLET_1
        assert validate_address(Network.ALGORAND, VALID_WALLET_2) == VALID_WALLET_2

    @pytest.mark.unit
    def test_empty_address_raises_400(self):
        with pytest.raises(HTTPException) as exc_info:
            validate_address(Network.ALGORAND, "")
        assert exc_info.value.status_code == 400
        assert "required" in exc_info.value.detail.lower()

    @pytest.mark.unit
    def test_short_address_raises_400(self):
        with pytest.raises(InvalidAddressError):
            validate_address(Network.ALGORAND, INVALID_WALLET_SHORT)

    @pytest.mark.unit
    def test_bad_checksum_rejected(self):
        assert not is_valid_address(AddressFamily.ALGORAND, INVALID_WALLET_BAD_CHECKSUM)

    @pytest.mark.unit
    def test_lowercase_rejected(self):
        assert not is_valid_address(AddressFamily.ALGORAND, VALID_WALLET_1.lower())


class TestSolanaAddress:

    @pytest.mark.unit
    def test_valid_public_key(self):
        assert is_valid_address(AddressFamily.SOLANA, solana_address(7))

    @pytest.mark.unit
    def test_system_program_all_ones(self):
        assert is_valid_address(AddressFamily.SOLANA, "1" * 32)

    @pytest.mark.unit
    def test_invalid_base58_character(self):
        # '0', 'O', 'I' and 'l' are not in the base58 alphabet
        assert not is_valid_address(AddressFamily.SOLANA, "0" + solana_address(7)[1:])

    @pytest.mark.unit
    def test_signature_is_not_an_address(self):
        assert not is_valid_address(AddressFamily.SOLANA, solana_signature(7))


class TestEvmAddress:

    @pytest.mark.unit
    def test_valid_address(self):
        assert is_valid_address(AddressFamily.EVM, evm_address(1))
        assert is_valid_address(AddressFamily.EVM, "0x" + "aBcDeF" * 6 + "0123")

    @pytest.mark.unit
    @pytest.mark.parametrize("address", ["0x123", "1" * 42, "0x" + "g" * 40, "0x" + "a" * 41])
    def test_malformed(self, address):
        assert not is_valid_address(AddressFamily.EVM, address)

    @pytest.mark.unit
    def test_error_names_field(self):
        with pytest.raises(InvalidAddressError) as exc_info:
            validate_address(Network.POLYGON, "0x123", field="to_address")
        assert "to_address" in exc_info.value.detail


class TestXrpAddress:
    """Classic r-addresses: XRP base58 alphabet, version byte 0, 20-byte account id."""

    GENESIS = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"

    @pytest.mark.unit
    def test_valid_addresses(self):
        assert is_valid_address(AddressFamily.XRP, self.GENESIS)
        assert is_valid_address(AddressFamily.XRP, xrp_address(7))
        assert validate_address(Network.XRP, self.GENESIS) == self.GENESIS

    @pytest.mark.unit
    def test_bad_checksum_rejected(self):
        assert not is_valid_address(AddressFamily.XRP, self.GENESIS[:-1] + "i")
        with pytest.raises(InvalidAddressError):
            validate_address(Network.XRP, self.GENESIS[:-1] + "i", field="to_address")

    @pytest.mark.unit
    def test_bitcoin_address_rejected(self):
        assert not is_valid_address(AddressFamily.XRP, "1BoatSLRHtKNngkdXEeobR76b53LETtpyT")

    @pytest.mark.unit
    def test_wrong_payload_length(self):
        import base58
        long_payload = base58.b58encode_check(b"\x00" + bytes([7]) * 32, alphabet=base58.XRP_ALPHABET).decode()
        assert not is_valid_address(AddressFamily.XRP, long_payload)

    @pytest.mark.unit
    def test_other_families_rejected(self):
        assert not is_valid_address(AddressFamily.XRP, solana_address(7))
        assert not is_valid_address(AddressFamily.XRP, evm_address(7))


class TestAddressFamily:

    @pytest.mark.unit
    def test_detects_each_family(self):
        assert address_family_of(evm_address(1)) is AddressFamily.EVM
        assert address_family_of(solana_address(1)) is AddressFamily.SOLANA
        assert address_family_of(VALID_WALLET_1) is AddressFamily.ALGORAND
        assert address_family_of(xrp_address(1)) is AddressFamily.XRP

    @pytest.mark.unit
    def test_unknown(self):
        assert address_family_of("hello") is None

    @pytest.mark.unit
    def test_validated_wallet_dependency(self):
        assert validated_wallet(VALID_WALLET_1) == VALID_WALLET_1
        with pytest.raises(InvalidAddressError):
            validated_wallet("hello")


class TestTipId:

    @pytest.mark.unit
    def test_valid_ids(self):
        assert validate_tip_id(Network.SOLANA, solana_signature(3))
        assert validate_tip_id(Network.ARBITRUM, evm_tx_hash(3))
        assert validate_tip_id(Network.ALGORAND, algorand_tx_id(3))
        assert validate_tip_id(Network.XRP, xrp_tx_hash(3))
        assert validate_tip_id(Network.XRP, xrp_tx_hash(3).lower())

    @pytest.mark.unit
    @pytest.mark.parametrize("network,tip_id", [
        (Network.ETHEREUM, "0x" + "a" * 63),
        (Network.ETHEREUM, "a" * 66),
        (Network.SOLANA, solana_address(3)),
        (Network.SOLANA, "not-base58!"),
        (Network.ALGORAND, "a" * 52),
        (Network.ALGORAND, evm_tx_hash(3)),
        (Network.XRP, evm_tx_hash(3)),
        (Network.XRP, "G" * 64),
    ])
    def test_malformed_ids(self, network, tip_id):
        with pytest.raises(InvalidAddressError):
            validate_tip_id(network, tip_id)

    @pytest.mark.unit
    def test_too_long(self):
        with pytest.raises(InvalidAddressError):
            validate_tip_id(Network.SOLANA, "1" * 129)

    @pytest.mark.unit
    def test_empty(self):
        with pytest.raises(InvalidAddressError):
            validate_tip_id(Network.SOLANA, "")


class TestParseNetwork:

    @pytest.mark.unit
    def test_case_insensitive(self):
        assert parse_network("Solana") is Network.SOLANA
        assert parse_network(" BASE ") is Network.BASE
        assert parse_network(Network.OPTIMISM) is Network.OPTIMISM

    @pytest.mark.unit
    def test_unsupported(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_network("dogecoin")
        assert "Supported networks" in exc_info.value.detail

    @pytest.mark.unit
    def test_network_metadata(self):
        assert Network.SOLANA.decimals == 9
        assert Network.POLYGON.decimals == 18
        assert Network.ALGORAND.decimals == 6
        assert Network.XRP.decimals == 6
        assert Network.XRP.token_symbol == "XRP"
        assert Network.POLYGON.token_symbol == "MATIC"
        assert Network.BASE.address_family is AddressFamily.EVM
