"""Hot wallet management utilities.

- Create a local wallet from a private key

- Sign digests, personal messages and EIP-712 documents with a local recovery check

- Sign transactions with manual nonce management
"""

import logging
from typing import NamedTuple, Optional, Union

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_typing import HexAddress
from hexbytes import HexBytes
from web3 import Web3

from link_signer.compat import get_tx_broadcast_data
from link_signer.eip_712 import TypedDataDocument
from link_signer.signing import (
    Signature,
    SignedDigest,
    get_personal_message_hash,
    sign_digest,
    validate_private_key,
    verify_matches,
)

logger = logging.getLogger(__name__)


class SignedTransactionWithNonce(NamedTuple):
    """A signed transaction with the nonce and source data it was built from.

    - Compatible with :py:class:`eth_account.datastructures.SignedTransaction`

    - Retains the transaction source, to allow us to diagnose broadcasting failures better
    """

    raw_transaction: HexBytes

    hash: HexBytes

    r: int

    s: int

    v: int

    #: What was the source nonce for this transaction
    nonce: int

    #: What was the source address for this transaction
    address: str

    #: Unencoded transaction data as a dict.
    #:
    #: If broadcast fails, retain the source so we can debug the cause,
    #: like the original gas parameters.
    #:
    source: Optional[dict] = None

    def __repr__(self):
        return f"<SignedTransactionWithNonce hash:{self.hash.hex()} nonce:{self.nonce} payload:{self.raw_transaction.hex()}>"


class HotWallet:
    """Hot wallet for signing.

    - A hot wallet maintains a plain text private key of an Ethereum address in the process memory
      using :py:class:`eth_account.signers.local.LocalAccount`. The key is never written anywhere.

    - All signatures are recovered back locally and checked against :py:attr:`address`
      before they are returned, see :py:func:`link_signer.signing.verify_matches`.

    - Transactions are signed using manual nonce management.
      See :py:meth:`sync_nonce`, :py:meth:`allocate_nonce` and :py:meth:`sign_transaction_with_new_nonce`.

    Example:

    .. code-block:: python

        wallet = HotWallet.from_private_key(os.environ["PRIVATE_KEY"])
        signed = wallet.sign_personal_message("Hello")
        print(signed.signature.to_hex())

    .. note ::

        This class is not thread safe.
    """

    def __init__(self, account: LocalAccount):
        """Create a hot wallet from a local account."""
        self.account = account
        self.current_nonce: Optional[int] = None

    def __repr__(self):
        return f"<Hot wallet {self.account.address}>"

    @property
    def address(self) -> HexAddress:
        """Ethereum address of the wallet."""
        return self.account.address

    @property
    def private_key(self) -> HexBytes:
        """The private key as plain text."""
        return self.account._private_key

    def sign_digest(self, digest: bytes) -> Signature:
        """Sign a 32 bytes digest and check it recovers to our address.

        :raise link_signer.signing.RecoveryMismatchError:
            Should never happen
        """
        signature = sign_digest(self.private_key, digest)
        verify_matches(digest, signature, self.address)
        return signature

    def sign_personal_message(self, message: Union[str, bytes]) -> SignedDigest:
        """Sign an EIP-191 personal message."""
        digest = get_personal_message_hash(message)
        return SignedDigest(digest=digest, signature=self.sign_digest(digest), address=self.address)

    def sign_typed_data(self, document: TypedDataDocument) -> SignedDigest:
        """Sign an EIP-712 document."""
        digest = document.hash()
        signature = self.sign_digest(digest)
        logger.info("Signed EIP-712 %s by %s, digest 0x%s", document.primary_type, self.address, digest.hex())
        return SignedDigest(digest=digest, signature=signature, address=self.address)

    def sync_nonce(self, web3: Web3):
        """Initialise the current nonce from the on-chain data."""
        self.current_nonce = web3.eth.get_transaction_count(self.account.address)
        logger.info("Synced nonce for %s to %d", self.account.address, self.current_nonce)

    def allocate_nonce(self) -> int:
        """Get the next free available nonce to be used with a transaction.

        Ethereum tx nonces are a counter.

        Increase the nonce counter
        """
        assert self.current_nonce is not None, f"Nonce is not yet synced from the blockchain: {self}"
        nonce = self.current_nonce
        self.current_nonce += 1
        return nonce

    def sign_transaction_with_new_nonce(self, tx: dict) -> SignedTransactionWithNonce:
        """Signs a transaction and allocates a nonce for it.

        :param tx:
            Ethereum transaction data as a dict.
            This is modified in-place to include nonce.

        :return:
            A transaction payload and nonce with used to generate this transaction.
        """
        assert type(tx) == dict
        assert "nonce" not in tx
        tx["nonce"] = self.allocate_nonce()
        _signed = self.account.sign_transaction(tx)

        return SignedTransactionWithNonce(
            raw_transaction=get_tx_broadcast_data(_signed),
            hash=_signed.hash,
            v=_signed.v,
            r=_signed.r,
            s=_signed.s,
            nonce=tx["nonce"],
            source=tx,
            address=self.address,
        )

    @staticmethod
    def from_private_key(key: Union[str, bytes]) -> "HotWallet":
        """Create a hot wallet from a private key.

        :param key:
            0x prefixed or plain hex string, or raw bytes

        :raise link_signer.signing.InvalidKeyError:
            Not a valid secp256k1 private key
        """
        account = Account.from_key(validate_private_key(key))
        return HotWallet(account)
