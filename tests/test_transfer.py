"""Native token transfer with a mocked node."""

import datetime
from decimal import Decimal
from unittest.mock import Mock

import pytest
from eth_account import Account
from hexbytes import HexBytes
from web3.exceptions import TimeExhausted

from link_signer.confirmation import ConfirmationTimedOut, Reverted, wait_for_receipt
from link_signer.gas import GasEstimationError, GasPriceSuggestion, apply_gas, estimate_gas_limit, fixed_gas_price
from link_signer.transfer import send_native_token

RECEIVER = "0x0000000000000000000000000000000000000001"
TX_HASH = HexBytes("0x" + "ab" * 32)


@pytest.fixture()
def web3() -> Mock:
    web3 = Mock()
    web3.eth.get_transaction_count.return_value = 3
    web3.eth.estimate_gas.return_value = 21_000
    web3.eth.send_raw_transaction.return_value = TX_HASH
    web3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "blockNumber": 100}
    return web3


def test_fixed_gas_price():
    gas_price = fixed_gas_price(Decimal(2), Decimal(60))
    assert gas_price.max_priority_fee_per_gas == 2 * 10**9
    assert gas_price.max_fee_per_gas == 60 * 10**9
    assert apply_gas({}, gas_price) == {"maxPriorityFeePerGas": 2 * 10**9, "maxFeePerGas": 60 * 10**9}
    assert "60.00G" in gas_price.pformat()


def test_fixed_gas_price_priority_above_max():
    with pytest.raises(AssertionError):
        fixed_gas_price(Decimal(10), Decimal(1))


def test_estimate_gas_limit(web3):
    assert estimate_gas_limit(web3, {"from": RECEIVER, "to": RECEIVER, "value": 1}) == 23_100


def test_estimate_gas_limit_failure(web3):
    web3.eth.estimate_gas.side_effect = ValueError("insufficient funds for transfer")
    with pytest.raises(GasEstimationError, match="insufficient funds"):
        estimate_gas_limit(web3, {"from": RECEIVER, "to": RECEIVER, "value": 1})


def test_send_native_token(web3, trading_wallet):
    result = send_native_token(
        web3,
        trading_wallet,
        to=RECEIVER,
        amount_eth=Decimal("0.001"),
        gas_price=fixed_gas_price(Decimal(2), Decimal(60)),
        chain_id=1,
    )
    assert result.tx_hash == TX_HASH
    assert result.receipt["status"] == 1

    raw_tx = web3.eth.send_raw_transaction.call_args.args[0]
    assert Account.recover_transaction(raw_tx) == trading_wallet.address
    assert trading_wallet.current_nonce == 4


def test_send_native_token_no_wait(web3, trading_wallet):
    result = send_native_token(
        web3,
        trading_wallet,
        to=RECEIVER,
        amount_eth=Decimal("0.001"),
        gas_price=GasPriceSuggestion(max_priority_fee_per_gas=1, max_fee_per_gas=2),
        chain_id=1,
        wait=False,
    )
    assert result.receipt is None
    web3.eth.wait_for_transaction_receipt.assert_not_called()


def test_send_native_token_estimate_fails(web3, trading_wallet):
    web3.eth.estimate_gas.side_effect = ValueError("execution reverted")
    with pytest.raises(GasEstimationError):
        send_native_token(
            web3,
            trading_wallet,
            to=RECEIVER,
            amount_eth=Decimal("0.001"),
            gas_price=fixed_gas_price(Decimal(2), Decimal(60)),
            chain_id=1,
        )
    web3.eth.send_raw_transaction.assert_not_called()


def test_wait_for_receipt_timeout(web3):
    web3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted()
    with pytest.raises(ConfirmationTimedOut):
        wait_for_receipt(web3, TX_HASH, max_timeout=datetime.timedelta(seconds=1))


def test_wait_for_receipt_reverted(web3):
    web3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "blockNumber": 100}
    with pytest.raises(Reverted):
        wait_for_receipt(web3, TX_HASH)
