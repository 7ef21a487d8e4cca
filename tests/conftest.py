"""Shared test keys.

Fixed keys so that signatures are reproducible between runs.
"""

import pytest
from eth_account import Account
from eth_account.signers.local import LocalAccount

from link_signer.hotwallet import HotWallet


@pytest.fixture()
def trading_account() -> LocalAccount:
    """Key A, the link initiator."""
    return Account.from_key("0x" + "11" * 32)


@pytest.fixture()
def staking_account() -> LocalAccount:
    """Key B, the link finalizer."""
    return Account.from_key("0x" + "22" * 32)


@pytest.fixture()
def trading_wallet(trading_account) -> HotWallet:
    return HotWallet(trading_account)


@pytest.fixture()
def staking_wallet(staking_account) -> HotWallet:
    return HotWallet(staking_account)
