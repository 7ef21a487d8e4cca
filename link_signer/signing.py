"""Signing and local signature verification.

- Sign raw 32 bytes digests (EIP-712) and EIP-191 personal messages
  with a secp256k1 private key

- Recover the signer address from a signature

- Every signature we produce is recovered back and compared against the signer address
  before it is allowed to leave the process, see :py:func:`verify_matches`

Signing goes through :py:class:`eth_account.signers.local.LocalAccount`, which uses
RFC 6979 deterministic nonces: the same key and the same digest always give the same signature.

Example:

.. code-block:: python

    from link_signer.signing import sign_personal_message, recover_address

    signed = sign_personal_message(private_key, "hello")
    assert recover_address(signed.digest, signed.signature) == signed.address
"""

import logging
from typing import NamedTuple, Union

from eth_account import Account
from eth_typing import HexAddress, HexStr
from hexbytes import HexBytes
from web3 import Web3

from link_signer.compat import sign_hash_compat

logger = logging.getLogger(__name__)

#: Order of the secp256k1 curve group
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

#: EIP-191 version 0x45 prefix
PERSONAL_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n"


class InvalidKeyError(Exception):
    """Private key is not a valid secp256k1 scalar."""


class RecoveryMismatchError(Exception):
    """Signature does not recover to the expected signer.

    Means the digest was encoded differently than what was signed;
    such a signature can never verify on the remote side.
    """


class Signature(NamedTuple):
    """ECDSA signature with Ethereum style recovery id."""

    r: int

    s: int

    #: 27 or 28
    v: int

    def __repr__(self):
        return f"<Signature r:{self.r:#066x} s:{self.s:#066x} v:{self.v}>"

    def to_bytes(self) -> bytes:
        """65 bytes ``r || s || v``."""
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v])

    def to_hex(self) -> HexStr:
        """0x prefixed 65 bytes signature, as ethers.js and MetaMask output it."""
        return HexStr("0x" + self.to_bytes().hex())

    def as_dict(self) -> dict:
        """Split signature for JSON APIs, ``r`` and ``s`` as 32 bytes hex."""
        return {
            "r": f"{self.r:#066x}",
            "s": f"{self.s:#066x}",
            "v": self.v,
        }


class SignedDigest(NamedTuple):
    """What was signed, by whom, and the signature."""

    #: The 32 bytes hash the signature covers
    digest: bytes

    signature: Signature

    #: Checksummed signer address
    address: HexAddress


def validate_private_key(private_key: Union[str, bytes]) -> bytes:
    """Parse and check a private key.

    :param private_key:
        32 bytes, or hex string with or without 0x prefix

    :return:
        Private key as 32 bytes

    :raise InvalidKeyError:
        Not 32 bytes or not in range ``[1, n - 1]``
    """
    if isinstance(private_key, str):
        try:
            raw = bytes.fromhex(private_key[2:] if private_key.startswith("0x") else private_key)
        except ValueError as e:
            raise InvalidKeyError("Private key is not a hex string") from e
    elif isinstance(private_key, (bytes, bytearray)):
        raw = bytes(private_key)
    else:
        raise InvalidKeyError(f"Unsupported private key type: {type(private_key).__name__}")

    if len(raw) != 32:
        raise InvalidKeyError(f"Private key must be 32 bytes, got {len(raw)}")

    scalar = int.from_bytes(raw, "big")
    if not 1 <= scalar < SECP256K1_N:
        raise InvalidKeyError("Private key is outside secp256k1 range [1, n-1]")

    return raw


def derive_address(private_key: Union[str, bytes]) -> HexAddress:
    """Get the checksummed address of a private key."""
    return Account.from_key(validate_private_key(private_key)).address


def sign_digest(private_key: Union[str, bytes], digest: bytes) -> Signature:
    """Sign a 32 bytes digest.

    :return:
        Signature with ``v`` as 27 or 28
    """
    assert len(digest) == 32, f"Digest must be 32 bytes, got {len(digest)}"
    account = Account.from_key(validate_private_key(private_key))
    signed = sign_hash_compat(account, digest)
    v = signed.v
    if v < 27:
        v += 27
    return Signature(r=signed.r, s=signed.s, v=v)


def get_personal_message_hash(message: Union[str, bytes]) -> bytes:
    """EIP-191 personal message hash.

    ``keccak256("\\x19Ethereum Signed Message:\\n" + len(message) + message)``,
    the length being the decimal byte length of the UTF-8 encoded message.
    """
    if isinstance(message, str):
        message = message.encode("utf-8")
    return bytes(Web3.keccak(PERSONAL_MESSAGE_PREFIX + str(len(message)).encode("ascii") + message))


def recover_address(digest: bytes, signature: Signature) -> HexAddress:
    """Recover the checksummed signer address from a digest and its signature."""
    return Account._recover_hash(HexBytes(digest), vrs=(signature.v, signature.r, signature.s))


def verify_matches(digest: bytes, signature: Signature, expected_address: HexAddress) -> HexAddress:
    """Check the signature recovers to the expected signer.

    :return:
        The recovered address

    :raise RecoveryMismatchError:
        Recovered address differs from ``expected_address``
    """
    recovered = recover_address(digest, signature)
    if recovered.lower() != expected_address.lower():
        raise RecoveryMismatchError(f"Local recovery mismatch. recovered={recovered} expected={expected_address} digest=0x{digest.hex()}")
    return recovered


def sign_personal_message(private_key: Union[str, bytes], message: Union[str, bytes]) -> SignedDigest:
    """Sign a message the same way ``personal_sign`` / ethers.js ``signMessage()`` does.

    The signature is verified locally before returning.
    """
    address = derive_address(private_key)
    digest = get_personal_message_hash(message)
    signature = sign_digest(private_key, digest)
    verify_matches(digest, signature, address)
    logger.debug("Signed personal message of %d bytes by %s", len(message), address)
    return SignedDigest(digest=digest, signature=signature, address=address)
