"""Environment configuration parsing."""

from decimal import Decimal

import pytest

from link_signer.config import ConfigError, LinkConfig, SignedAPIConfig, TransferConfig, getenv_strict
from link_signer.hyperliquid.link import LinkRole

TRADING_KEY = "0x" + "11" * 32
STAKING_KEY = "0x" + "22" * 32
TRADING_ADDRESS = "0x19E7E376E7C213B7E7e7e46cc70A5dD086DAff2A"
STAKING_ADDRESS = "0x1563915e194D8CfBA1943570603F7606A3115508"


def test_getenv_strict():
    assert getenv_strict("A", {"A": " x "}) == "x"
    with pytest.raises(ConfigError, match="A"):
        getenv_strict("A", {})
    with pytest.raises(ConfigError):
        getenv_strict("A", {"A": "  "})


def test_link_config_initiator():
    config = LinkConfig.from_env(
        {
            "TRADING_PRIVATE_KEY": TRADING_KEY,
            "TRADING_USER_ADDRESS": STAKING_ADDRESS,
        }
    )
    assert config.role == LinkRole.initiator
    assert config.private_key == TRADING_KEY
    assert config.counterparty == STAKING_ADDRESS.lower()
    assert config.testnet is True
    assert config.nonce is None
    assert TRADING_KEY not in repr(config)


def test_link_config_initiator_nonce_override():
    config = LinkConfig.from_env(
        {
            "TRADING_PRIVATE_KEY": TRADING_KEY,
            "TRADING_USER_ADDRESS": STAKING_ADDRESS,
            "NONCE": "1000",
            "HYPERLIQUID_TESTNET": "false",
        }
    )
    assert config.nonce == 1000
    assert config.testnet is False


def test_link_config_finalizer():
    config = LinkConfig.from_env(
        {
            "IS_FINALIZE": "true",
            "NONCE": "1000",
            "STAKING_PRIVATE_KEY": STAKING_KEY,
            "STAKING_USER_ADDRESS": TRADING_ADDRESS,
        }
    )
    assert config.role == LinkRole.finalizer
    assert config.private_key == STAKING_KEY
    assert config.counterparty == TRADING_ADDRESS.lower()
    assert config.nonce == 1000


def test_link_config_finalizer_without_nonce():
    """The finalizer must be given the initiator's nonce."""
    with pytest.raises(ConfigError, match="NONCE"):
        LinkConfig.from_env(
            {
                "IS_FINALIZE": "true",
                "STAKING_PRIVATE_KEY": STAKING_KEY,
                "STAKING_USER_ADDRESS": TRADING_ADDRESS,
            }
        )


@pytest.mark.parametrize(
    "env",
    [
        {"TRADING_USER_ADDRESS": STAKING_ADDRESS},
        {"TRADING_PRIVATE_KEY": TRADING_KEY},
        {"TRADING_PRIVATE_KEY": TRADING_KEY, "TRADING_USER_ADDRESS": "0x1234"},
        {"TRADING_PRIVATE_KEY": TRADING_KEY, "TRADING_USER_ADDRESS": STAKING_ADDRESS, "NONCE": "abc"},
        {"TRADING_PRIVATE_KEY": TRADING_KEY, "TRADING_USER_ADDRESS": STAKING_ADDRESS, "NONCE": "-1"},
        {"TRADING_PRIVATE_KEY": TRADING_KEY, "TRADING_USER_ADDRESS": STAKING_ADDRESS, "NONCE": str(2**64)},
    ],
)
def test_link_config_invalid(env):
    with pytest.raises(ConfigError):
        LinkConfig.from_env(env)


def test_signed_api_config_personal():
    config = SignedAPIConfig.from_env(
        {
            "ETH_RPC_URL": "http://localhost:8545",
            "PRIVATE_KEY": TRADING_KEY,
            "TARGET_API_URL": "https://example.com/api",
            "MESSAGE": "Log me in",
            "API_PAYLOAD_JSON": '{"a": 1}',
        }
    )
    assert config.sign_mode == "personal"
    assert config.message == "Log me in"
    assert config.typed_data is None
    assert config.payload == {"a": 1}


def test_signed_api_config_typed():
    env = {
        "ETH_RPC_URL": "http://localhost:8545",
        "PRIVATE_KEY": TRADING_KEY,
        "TARGET_API_URL": "https://example.com/api",
        "SIGN_MODE": "typed",
    }
    with pytest.raises(ConfigError, match="TYPED_DATA_JSON"):
        SignedAPIConfig.from_env(env)

    with pytest.raises(ConfigError, match="TYPED_DATA_JSON"):
        SignedAPIConfig.from_env(dict(env, TYPED_DATA_JSON="{not json"))

    config = SignedAPIConfig.from_env(dict(env, TYPED_DATA_JSON='{"domain": {}, "types": {}, "message": {}}'))
    assert config.typed_data == {"domain": {}, "types": {}, "message": {}}
    assert config.payload == {}


def test_signed_api_config_bad_mode():
    with pytest.raises(ConfigError, match="SIGN_MODE"):
        SignedAPIConfig.from_env(
            {
                "ETH_RPC_URL": "http://localhost:8545",
                "PRIVATE_KEY": TRADING_KEY,
                "TARGET_API_URL": "https://example.com/api",
                "SIGN_MODE": "raw",
            }
        )


def test_transfer_config():
    env = {
        "ETH_RPC_URL": "http://localhost:8545",
        "CHAIN_ID": "1",
        "PRIVATE_KEY": TRADING_KEY,
        "TO_ADDRESS": STAKING_ADDRESS,
        "AMOUNT_ETH": "0.5",
    }
    config = TransferConfig.from_env(env)
    assert config.chain_id == 1
    assert config.amount_eth == Decimal("0.5")
    assert config.max_priority_fee_gwei == Decimal(2)
    assert config.max_fee_gwei == Decimal(60)
    assert config.wait_for_receipt is True

    config = TransferConfig.from_env(dict(env, WAIT_FOR_RECEIPT="no", MAX_FEE_GWEI="100"))
    assert config.wait_for_receipt is False
    assert config.max_fee_gwei == Decimal(100)

    with pytest.raises(ConfigError):
        TransferConfig.from_env(dict(env, AMOUNT_ETH="lots"))

    with pytest.raises(ConfigError):
        TransferConfig.from_env(dict(env, CHAIN_ID="mainnet"))


def test_link_config_zero_padded_nonce():
    """A nonce copied with leading zeros is read as decimal."""
    config = LinkConfig.from_env(
        {
            "IS_FINALIZE": "true",
            "NONCE": "01000",
            "STAKING_PRIVATE_KEY": STAKING_KEY,
            "STAKING_USER_ADDRESS": TRADING_ADDRESS,
        }
    )
    assert config.nonce == 1000


@pytest.mark.parametrize(
    "overrides",
    [
        {"AMOUNT_ETH": "NaN"},
        {"AMOUNT_ETH": "Infinity"},
        {"AMOUNT_ETH": "-1"},
        {"MAX_FEE_GWEI": "NaN"},
        {"MAX_PRIORITY_FEE_GWEI": "Infinity"},
        {"MAX_PRIORITY_FEE_GWEI": "-1"},
        {"MAX_PRIORITY_FEE_GWEI": "100", "MAX_FEE_GWEI": "60"},
    ],
)
def test_transfer_config_invalid_amounts(overrides):
    env = {
        "ETH_RPC_URL": "http://localhost:8545",
        "CHAIN_ID": "1",
        "PRIVATE_KEY": TRADING_KEY,
        "TO_ADDRESS": STAKING_ADDRESS,
        "AMOUNT_ETH": "0.5",
    }
    with pytest.raises(ConfigError):
        TransferConfig.from_env(dict(env, **overrides))
