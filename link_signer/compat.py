# compat.py
"""
web3.py v6/v7 compatibility module
"""

from importlib.metadata import version

from eth_account.datastructures import SignedMessage
from eth_account.signers.local import LocalAccount
from hexbytes import HexBytes
from packaging.version import Version

pkg_version = version("web3")
WEB3_PY_V7 = Version(pkg_version) >= Version("7.0.0")


def sign_hash_compat(account: LocalAccount, message_hash: bytes) -> SignedMessage:
    """Sign a raw 32 bytes hash.

    eth_account renamed ``signHash`` to ``unsafe_sign_hash`` in the version shipped with web3.py v7.
    """
    if WEB3_PY_V7:
        return account.unsafe_sign_hash(message_hash)
    else:
        return account.signHash(message_hash)


def get_tx_broadcast_data(signed_tx) -> HexBytes:
    """Get raw transaction bytes with compatibility for attribute name changes.

    eth_account changed ``rawTransaction`` to ``raw_transaction`` in newer versions.

    :param signed_tx:
        Signed transaction object from ``SignedTransaction`` | :py:class:`link_signer.hotwallet.SignedTransactionWithNonce`

    :return:
        Raw transaction bytes ready for broadcasting to the network
    """
    if hasattr(signed_tx, "raw_transaction"):
        return signed_tx.raw_transaction
    elif hasattr(signed_tx, "rawTransaction"):
        return signed_tx.rawTransaction
    else:
        raise AttributeError(f"SignedTransaction object has neither 'raw_transaction' nor 'rawTransaction' attribute. Available attributes: {dir(signed_tx)}")
