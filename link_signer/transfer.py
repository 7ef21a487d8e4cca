"""Native token transfers from a hot wallet.

Example:

.. code-block:: python

    from decimal import Decimal

    from web3 import HTTPProvider, Web3

    from link_signer.gas import fixed_gas_price
    from link_signer.hotwallet import HotWallet
    from link_signer.transfer import send_native_token

    web3 = Web3(HTTPProvider(json_rpc_url))
    wallet = HotWallet.from_private_key(private_key)
    result = send_native_token(
        web3,
        wallet,
        to="0x0000000000000000000000000000000000000001",
        amount_eth=Decimal("0.001"),
        gas_price=fixed_gas_price(Decimal(2), Decimal(60)),
    )
"""

import datetime
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from eth_typing import HexAddress
from hexbytes import HexBytes
from web3 import Web3

from link_signer.confirmation import broadcast_transaction, wait_for_receipt
from link_signer.gas import GasPriceSuggestion, apply_gas, estimate_gas_limit
from link_signer.hotwallet import HotWallet

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TransferResult:
    tx_hash: HexBytes

    #: Only set if we waited for the receipt
    receipt: Optional[dict] = None


def send_native_token(
    web3: Web3,
    wallet: HotWallet,
    to: HexAddress,
    amount_eth: Decimal,
    gas_price: GasPriceSuggestion,
    chain_id: Optional[int] = None,
    wait: bool = True,
    max_timeout=datetime.timedelta(minutes=5),
) -> TransferResult:
    """Send ether, or the native token of the chain, from a hot wallet.

    - Type 2 transaction with the given fee caps

    - Gas limit is the node estimate plus 10%

    :param chain_id:
        Expected chain id. Read from the node if not given.

    :param wait:
        Wait for the receipt

    :raise link_signer.gas.GasEstimationError:
        The node could not estimate the transfer
    """
    if chain_id is None:
        chain_id = web3.eth.chain_id

    tx = {
        "chainId": chain_id,
        "from": wallet.address,
        "to": Web3.to_checksum_address(to),
        "value": Web3.to_wei(amount_eth, "ether"),
        "type": 2,
    }
    apply_gas(tx, gas_price)
    tx["gas"] = estimate_gas_limit(web3, tx)

    wallet.sync_nonce(web3)
    signed_tx = wallet.sign_transaction_with_new_nonce(tx)
    tx_hash = broadcast_transaction(web3, signed_tx)

    receipt = None
    if wait:
        receipt = wait_for_receipt(web3, tx_hash, max_timeout=max_timeout)

    return TransferResult(tx_hash=tx_hash, receipt=receipt)
