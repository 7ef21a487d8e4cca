"""Link a Hyperliquid trading account to a staking account.

The link takes two runs of this script, one per account.
The second run must use the nonce printed by the first run.

Usage:

.. code-block:: shell

    # 1. Trading account starts the link
    TRADING_PRIVATE_KEY=0x... TRADING_USER_ADDRESS=<staking account> \
        poetry run python scripts/hyperliquid/link-staking-user.py

    # 2. Staking account finalises with the nonce from step 1
    IS_FINALIZE=true NONCE=<nonce from step 1> \
    STAKING_PRIVATE_KEY=0x... STAKING_USER_ADDRESS=<trading account> \
        poetry run python scripts/hyperliquid/link-staking-user.py

Environment variables:

- ``IS_FINALIZE``: ``true`` for the staking account run. Default: trading account run
- ``HYPERLIQUID_TESTNET``: ``false`` for mainnet. Default: testnet
- ``NONCE``: Required for the staking account run, optional override for the trading account run
- ``TRADING_PRIVATE_KEY``, ``TRADING_USER_ADDRESS``: Trading account key, staking account address
- ``STAKING_PRIVATE_KEY``, ``STAKING_USER_ADDRESS``: Staking account key, trading account address
- ``LOG_LEVEL``: Default: info

Variables can also be put in a ``.env`` file.
"""

import datetime
import logging

from dotenv import load_dotenv

from link_signer.config import LinkConfig
from link_signer.hotwallet import HotWallet
from link_signer.hyperliquid.link import LinkRole, sign_and_submit_link
from link_signer.hyperliquid.network import get_hyperliquid_network
from link_signer.utils import run_script, setup_console_logging

logger = logging.getLogger(__name__)


def main():
    load_dotenv()
    setup_console_logging()

    logger.info("Timestamp: %s", datetime.datetime.now(datetime.timezone.utc).isoformat())
    config = LinkConfig.from_env()
    network = get_hyperliquid_network(config.testnet)
    wallet = HotWallet.from_private_key(config.private_key)

    result = sign_and_submit_link(
        wallet,
        config.role,
        config.counterparty,
        network,
        nonce=config.nonce,
    )

    if result.role == LinkRole.initiator:
        logger.info("Link started. Finalise from the staking account with NONCE=%d", result.nonce)
    else:
        logger.info("Link finalised with nonce %d", result.nonce)


if __name__ == "__main__":
    run_script(main)
