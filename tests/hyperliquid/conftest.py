"""Shared fixtures for Hyperliquid tests.

The exchange is mocked: no test talks to Hyperliquid.
"""

from unittest.mock import Mock

import pytest

from link_signer.hyperliquid.network import HYPERLIQUID_TESTNET, HyperliquidNetwork


@pytest.fixture()
def network() -> HyperliquidNetwork:
    return HYPERLIQUID_TESTNET


def _make_response(status_code: int = 200, data=None, text: str | None = None) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if data is None:
        data = {"status": "ok", "response": {"type": "default"}}
    response.json.return_value = data
    response.text = text if text is not None else str(data)
    return response


@pytest.fixture()
def make_response():
    """Factory for fake ``requests.Response`` objects."""
    return _make_response


@pytest.fixture()
def accepting_session() -> Mock:
    """Session where the exchange accepts everything."""
    session = Mock()
    session.post.return_value = _make_response()
    return session
