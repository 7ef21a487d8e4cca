"""Transaction broadcasting and receipt waiting.

No rebroadcasting and no node switching: one transaction goes out and we wait for it once.
"""

import datetime
import logging

from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import TimeExhausted

from link_signer.compat import get_tx_broadcast_data
from link_signer.hotwallet import SignedTransactionWithNonce

logger = logging.getLogger(__name__)


class ConfirmationTimedOut(Exception):
    """We exceeded the transaction confirmation timeout."""


class Reverted(Exception):
    """Transaction reverted on-chain."""


def broadcast_transaction(web3: Web3, signed_tx: SignedTransactionWithNonce) -> HexBytes:
    """Send a signed transaction to the node.

    :return:
        Transaction hash
    """
    tx_hash = web3.eth.send_raw_transaction(get_tx_broadcast_data(signed_tx))
    logger.info("Transaction sent: %s, nonce %d", tx_hash.hex(), signed_tx.nonce)
    return tx_hash


def wait_for_receipt(
    web3: Web3,
    tx_hash: HexBytes,
    max_timeout=datetime.timedelta(minutes=5),
    poll_delay=datetime.timedelta(seconds=1),
) -> dict:
    """Wait for a transaction to be mined.

    :raise ConfirmationTimedOut:
        Not mined in ``max_timeout``

    :raise Reverted:
        Mined with status 0
    """
    try:
        receipt = web3.eth.wait_for_transaction_receipt(
            tx_hash,
            timeout=max_timeout.total_seconds(),
            poll_latency=poll_delay.total_seconds(),
        )
    except TimeExhausted as e:
        raise ConfirmationTimedOut(f"Transaction {tx_hash.hex()} was not confirmed in {max_timeout}") from e

    logger.info("Receipt status: %s | Block: %s", receipt["status"], receipt["blockNumber"])

    if receipt["status"] != 1:
        raise Reverted(f"Transaction {tx_hash.hex()} reverted in block {receipt['blockNumber']}")

    return receipt
