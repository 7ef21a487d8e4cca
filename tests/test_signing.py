"""Signing, personal messages and local recovery."""

import os

import pytest
from eth_account import Account
from eth_account.messages import _hash_eip191_message, encode_defunct
from web3 import Web3

from link_signer.signing import (
    SECP256K1_N,
    InvalidKeyError,
    RecoveryMismatchError,
    Signature,
    derive_address,
    get_personal_message_hash,
    recover_address,
    sign_digest,
    sign_personal_message,
    validate_private_key,
    verify_matches,
)


@pytest.fixture()
def private_key() -> str:
    return "0x" + "11" * 32


def test_sign_recover_round_trip(private_key):
    """Recovered address is the signer for random digests."""
    address = derive_address(private_key)
    for _ in range(10):
        digest = os.urandom(32)
        signature = sign_digest(private_key, digest)
        assert signature.v in (27, 28)
        assert recover_address(digest, signature) == address


def test_sign_digest_is_deterministic(private_key):
    digest = bytes(Web3.keccak(text="deterministic"))
    assert sign_digest(private_key, digest) == sign_digest(private_key, digest)


def test_signature_formats():
    signature = Signature(r=1, s=2, v=27)
    assert signature.to_hex() == "0x" + "00" * 31 + "01" + "00" * 31 + "02" + "1b"
    assert signature.as_dict() == {
        "r": "0x" + "00" * 31 + "01",
        "s": "0x" + "00" * 31 + "02",
        "v": 27,
    }


@pytest.mark.parametrize(
    "message",
    [
        "hello",
        "",
        "Ünïcödé ✓",
        "x" * 5000,
    ],
)
def test_personal_message_round_trip(private_key, message):
    """Empty, non-ASCII and multi-kilobyte messages."""
    signed = sign_personal_message(private_key, message)
    assert signed.address == derive_address(private_key)
    assert recover_address(signed.digest, signed.signature) == signed.address

    # Same as eth_account / ethers.js signMessage()
    reference = Account.sign_message(encode_defunct(text=message), private_key)
    assert signed.signature.to_bytes() == bytes(reference.signature)


def test_personal_message_hash():
    """Length prefix is the decimal byte length."""
    message = "hello"
    assert get_personal_message_hash(message) == bytes(Web3.keccak(b"\x19Ethereum Signed Message:\n5hello"))
    assert get_personal_message_hash(message) == bytes(_hash_eip191_message(encode_defunct(text=message)))
    assert get_personal_message_hash(b"\x00\x01") == bytes(Web3.keccak(b"\x19Ethereum Signed Message:\n2\x00\x01"))


def test_verify_matches(private_key):
    digest = bytes(Web3.keccak(text="verify"))
    signature = sign_digest(private_key, digest)
    address = derive_address(private_key)

    assert verify_matches(digest, signature, address.lower()) == address

    with pytest.raises(RecoveryMismatchError):
        verify_matches(digest, signature, "0x0000000000000000000000000000000000000001")

    # Signature over a different digest recovers to someone else
    other_digest = bytes(Web3.keccak(text="other"))
    with pytest.raises(RecoveryMismatchError):
        verify_matches(other_digest, signature, address)


@pytest.mark.parametrize(
    "key",
    [
        "0x" + "00" * 32,
        hex(SECP256K1_N),
        "0x" + "ff" * 32,
        "0x1234",
        "not a key",
        b"\x01" * 31,
        12345,
    ],
)
def test_invalid_key(key):
    with pytest.raises(InvalidKeyError):
        validate_private_key(key)
    with pytest.raises(InvalidKeyError):
        sign_digest(key, b"\x00" * 32)


def test_valid_key_edges():
    assert validate_private_key("0x" + "00" * 31 + "01") == b"\x00" * 31 + b"\x01"
    assert validate_private_key(hex(SECP256K1_N - 1)) == (SECP256K1_N - 1).to_bytes(32, "big")
    assert validate_private_key("11" * 32) == bytes.fromhex("11" * 32)
