"""Sign a message and call an API that authenticates with Ethereum signatures.

The signature is sent in ``X-Eth-Signature`` header and the signer in ``X-Eth-Address``.

Usage:

.. code-block:: shell

    # Personal message
    ETH_RPC_URL=... PRIVATE_KEY=0x... TARGET_API_URL=https://example.com/api \
    MESSAGE="Log me in" \
        poetry run python scripts/sign-message-and-call-api.py

    # EIP-712 document
    ETH_RPC_URL=... PRIVATE_KEY=0x... TARGET_API_URL=https://example.com/api \
    SIGN_MODE=typed TYPED_DATA_JSON='{"domain": {...}, "types": {...}, "message": {...}}' \
        poetry run python scripts/sign-message-and-call-api.py

Environment variables:

- ``ETH_RPC_URL``: JSON-RPC node, checked for connectivity before signing
- ``PRIVATE_KEY``: Signing key
- ``TARGET_API_URL``: Where to POST
- ``SIGN_MODE``: ``personal`` or ``typed``. Default: personal
- ``MESSAGE``: Message for personal mode
- ``TYPED_DATA_JSON``: EIP-712 document for typed mode
- ``API_PAYLOAD_JSON``: JSON body. Default: ``{}``
- ``LOG_LEVEL``: Default: info
"""

import datetime
import logging

from dotenv import load_dotenv
from requests import Session
from web3 import HTTPProvider, Web3

from link_signer.api import call_signed_api, sign_for_api
from link_signer.config import SignedAPIConfig
from link_signer.hotwallet import HotWallet
from link_signer.utils import run_script, setup_console_logging

logger = logging.getLogger(__name__)


def main():
    load_dotenv()
    setup_console_logging()

    logger.info("Timestamp: %s", datetime.datetime.now(datetime.timezone.utc).isoformat())
    config = SignedAPIConfig.from_env()

    web3 = Web3(HTTPProvider(config.rpc_url))
    logger.info("Connected to chain %d, the latest block is %d", web3.eth.chain_id, web3.eth.block_number)

    wallet = HotWallet.from_private_key(config.private_key)
    signed = sign_for_api(wallet, config.sign_mode, message=config.message, typed_data=config.typed_data)
    logger.info("Signed by: %s", signed.address)
    logger.info("Signature: %s", signed.signature.to_hex())

    with Session() as session:
        response = call_signed_api(session, config.api_url, signed.address, signed.signature, config.payload)
    logger.info("%s", response.text)


if __name__ == "__main__":
    run_script(main)
