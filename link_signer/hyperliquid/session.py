"""HTTP session management for Hyperliquid exchange API.

- The session talks to the ``api-ui`` endpoint the Hyperliquid web app uses,
  so it sends the same browser-like headers as the web app

- Signed actions carry a nonce and are never retried: a failed submission
  is reported and the operator decides what to do next
"""

import logging

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter

from link_signer.hyperliquid.network import HyperliquidNetwork

logger = logging.getLogger(__name__)

#: HTTP timeout for submitting signed actions, seconds
DEFAULT_SUBMISSION_TIMEOUT = 30

#: Browser headers the web app sends with exchange requests
BROWSER_HEADERS = {
    "Accept": "*/*",
    "Accept-Language": "en-GB,en;q=0.6",
    "Connection": "keep-alive",
    "Content-Type": "application/json",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-site",
    "Sec-GPC": "1",
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/141.0.0.0 Safari/537.36",
    "sec-ch-ua": '"Brave";v="141", "Not?A_Brand";v="8", "Chromium";v="141"',
    "sec-ch-ua-mobile": "?0",
    "sec-ch-ua-platform": '"macOS"',
}


class SubmissionTimedOut(TimeoutError):
    """The remote API did not answer within the timeout.

    The request may or may not have been processed.
    """


def create_hyperliquid_session(network: HyperliquidNetwork) -> Session:
    """Create a requests Session configured for Hyperliquid exchange API.

    Example::

        from link_signer.hyperliquid.network import HYPERLIQUID_TESTNET
        from link_signer.hyperliquid.session import create_hyperliquid_session

        session = create_hyperliquid_session(HYPERLIQUID_TESTNET)

    :param network:
        Sets ``Origin`` and ``Referer`` headers

    :return:
        Session with web app headers and no retries
    """
    session = Session()
    session.headers.update(BROWSER_HEADERS)
    session.headers["Origin"] = network.app_url
    session.headers["Referer"] = f"{network.app_url}/"

    adapter = HTTPAdapter(max_retries=0)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def post_json(session: Session, url: str, payload: dict, headers: dict | None = None, timeout: float = DEFAULT_SUBMISSION_TIMEOUT) -> Response:
    """POST a JSON body, converting timeouts to :py:class:`SubmissionTimedOut`."""
    try:
        return session.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.Timeout as e:
        raise SubmissionTimedOut(f"No response from {url} in {timeout} seconds") from e


def submit_link_payload(
    session: Session,
    network: HyperliquidNetwork,
    payload: dict,
    timeout: float = DEFAULT_SUBMISSION_TIMEOUT,
) -> Response:
    """Send a signed action payload to the exchange endpoint.

    :param payload:
        See :py:func:`link_signer.hyperliquid.link.create_link_payload`

    :return:
        The raw response, not checked in any way
    """
    url = network.exchange_url
    logger.info("Submitting to %s", url)
    response = post_json(session, url, payload, timeout=timeout)
    logger.info("Response status: %d", response.status_code)
    return response
