"""Hot wallet signing."""

from unittest.mock import Mock

import pytest
from eth_account import Account
from hexbytes import HexBytes

from link_signer.eip_712 import TypedDataDocument
from link_signer.hotwallet import HotWallet
from link_signer.signing import InvalidKeyError, recover_address


def test_from_private_key():
    wallet = HotWallet.from_private_key("0x" + "11" * 32)
    assert wallet.address == Account.from_key("0x" + "11" * 32).address
    assert "11" * 32 not in repr(wallet)


def test_from_private_key_invalid():
    with pytest.raises(InvalidKeyError):
        HotWallet.from_private_key("0x" + "00" * 32)


def test_sign_typed_data(trading_wallet):
    document = TypedDataDocument.from_json_dict(
        {
            "domain": {"name": "MyDapp", "version": "1", "chainId": 1},
            "types": {"Login": [{"name": "user", "type": "address"}, {"name": "nonce", "type": "uint256"}]},
            "message": {"user": trading_wallet.address, "nonce": 1},
        }
    )
    signed = trading_wallet.sign_typed_data(document)
    assert signed.digest == document.hash()
    assert signed.address == trading_wallet.address
    assert recover_address(signed.digest, signed.signature) == trading_wallet.address


def test_sign_transaction_with_new_nonce(trading_wallet):
    web3 = Mock()
    web3.eth.get_transaction_count.return_value = 7
    trading_wallet.sync_nonce(web3)

    tx = {
        "chainId": 1,
        "to": "0x0000000000000000000000000000000000000001",
        "value": 1,
        "gas": 21_000,
        "maxFeePerGas": 60 * 10**9,
        "maxPriorityFeePerGas": 2 * 10**9,
        "type": 2,
    }
    signed = trading_wallet.sign_transaction_with_new_nonce(tx)
    assert signed.nonce == 7
    assert signed.address == trading_wallet.address
    assert isinstance(signed.raw_transaction, HexBytes)
    assert Account.recover_transaction(signed.raw_transaction) == trading_wallet.address
    assert trading_wallet.allocate_nonce() == 8


def test_allocate_nonce_needs_sync(trading_wallet):
    with pytest.raises(AssertionError):
        trading_wallet.allocate_nonce()
