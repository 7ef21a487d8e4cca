"""Send native token from a private key.

- Type 2 transaction with fixed fee caps
- Gas limit is the node estimate plus 10%
- Waits for the receipt unless told otherwise

Usage:

.. code-block:: shell

    ETH_RPC_URL=... CHAIN_ID=1 PRIVATE_KEY=0x... TO_ADDRESS=0x... AMOUNT_ETH=0.001 \
        poetry run python scripts/sign-and-send-tx.py

Environment variables:

- ``ETH_RPC_URL``, ``CHAIN_ID``: JSON-RPC node and its chain id
- ``PRIVATE_KEY``: Sender key
- ``TO_ADDRESS``, ``AMOUNT_ETH``: Receiver and amount
- ``MAX_PRIORITY_FEE_GWEI``: Default: 2
- ``MAX_FEE_GWEI``: Default: 60
- ``WAIT_FOR_RECEIPT``: Default: true
- ``LOG_LEVEL``: Default: info
"""

import datetime
import logging

from dotenv import load_dotenv
from web3 import HTTPProvider, Web3

from link_signer.config import ConfigError, TransferConfig
from link_signer.gas import fixed_gas_price
from link_signer.hotwallet import HotWallet
from link_signer.transfer import send_native_token
from link_signer.utils import run_script, setup_console_logging

logger = logging.getLogger(__name__)


def main():
    load_dotenv()
    setup_console_logging()

    logger.info("Timestamp: %s", datetime.datetime.now(datetime.timezone.utc).isoformat())
    config = TransferConfig.from_env()

    web3 = Web3(HTTPProvider(config.rpc_url))
    chain_id = web3.eth.chain_id
    if chain_id != config.chain_id:
        raise ConfigError(f"CHAIN_ID is {config.chain_id} but the node is on chain {chain_id}")
    logger.info("Connected to chain %d, the latest block is %d", chain_id, web3.eth.block_number)

    wallet = HotWallet.from_private_key(config.private_key)
    gas_price = fixed_gas_price(config.max_priority_fee_gwei, config.max_fee_gwei)
    logger.info("Sending %s from %s to %s, gas:\n%s", config.amount_eth, wallet.address, config.to_address, gas_price.pformat())

    send_native_token(
        web3,
        wallet,
        to=config.to_address,
        amount_eth=config.amount_eth,
        gas_price=gas_price,
        chain_id=config.chain_id,
        wait=config.wait_for_receipt,
    )


if __name__ == "__main__":
    run_script(main)
