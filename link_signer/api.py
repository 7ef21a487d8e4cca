"""Call HTTP APIs that authenticate requests with an Ethereum signature.

The signer address and the signature travel in headers:

- ``X-Eth-Address``: Checksummed signer address
- ``X-Eth-Signature``: 0x prefixed 65 bytes ``r || s || v`` signature

What was signed, a personal message or an EIP-712 document, is agreed with the API out of band.
"""

import enum
import logging

from eth_typing import HexAddress
from requests import Response, Session

from link_signer.config import ConfigError
from link_signer.eip_712 import TypedDataDocument
from link_signer.hotwallet import HotWallet
from link_signer.hyperliquid.session import DEFAULT_SUBMISSION_TIMEOUT, post_json
from link_signer.signing import Signature, SignedDigest

logger = logging.getLogger(__name__)


class SignedAPIError(Exception):
    """The API answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API call failed, HTTP {status_code}: {body}")


class SignMode(enum.Enum):
    """What the wallet signs for API authentication."""

    #: EIP-191 personal message
    personal = "personal"

    #: EIP-712 typed data document
    typed = "typed"


def sign_for_api(
    wallet: HotWallet,
    mode: SignMode | str,
    message: str | None = None,
    typed_data: dict | None = None,
) -> SignedDigest:
    """Produce the signature for the API call headers.

    :param mode:
        ``personal`` or ``typed``

    :param message:
        Message for ``personal`` mode

    :param typed_data:
        ``{domain, types, primaryType, message}`` document for ``typed`` mode

    :raise ConfigError:
        Unknown mode or missing input for the mode
    """
    try:
        mode = SignMode(mode)
    except ValueError as e:
        raise ConfigError("SIGN_MODE must be 'personal' or 'typed'") from e

    match mode:
        case SignMode.personal:
            if message is None:
                raise ConfigError("Personal signing needs a message")
            return wallet.sign_personal_message(message)
        case SignMode.typed:
            if typed_data is None:
                raise ConfigError("Typed data signing needs an EIP-712 document")
            return wallet.sign_typed_data(TypedDataDocument.from_json_dict(typed_data))


def call_signed_api(
    session: Session,
    url: str,
    address: HexAddress,
    signature: Signature,
    payload: dict | None = None,
    timeout: float = DEFAULT_SUBMISSION_TIMEOUT,
) -> Response:
    """POST a JSON payload with signature headers.

    :raise SignedAPIError:
        Non-2xx response

    :raise link_signer.hyperliquid.session.SubmissionTimedOut:
        No response in ``timeout`` seconds
    """
    headers = {
        "X-Eth-Address": address,
        "X-Eth-Signature": signature.to_hex(),
        "Content-Type": "application/json",
    }
    response = post_json(session, url, payload or {}, headers=headers, timeout=timeout)
    logger.info("API status: %d", response.status_code)
    if not response.ok:
        raise SignedAPIError(response.status_code, response.text)
    return response
