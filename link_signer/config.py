"""Environment variable configuration for the operator scripts.

- The library functions take these immutable config objects, or plain arguments,
  and never read ``os.environ`` themselves

- ``from_env()`` takes the environment as a mapping, so tests can pass a dict

- All validation happens here, before any key is touched or any request is made
"""

import json
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from eth_typing import HexAddress

from link_signer.hyperliquid.link import LinkRole

_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


class ConfigError(Exception):
    """Required configuration is missing or invalid."""


def getenv_strict(name: str, environ: Mapping[str, str] = os.environ) -> str:
    """Read a required environment variable.

    :raise ConfigError:
        Not set or blank
    """
    value = environ.get(name)
    if value is None or value.strip() == "":
        raise ConfigError(f"Missing required env var: {name}")
    return value.strip()


def parse_address(name: str, value: str) -> HexAddress:
    if not _ADDRESS.match(value):
        raise ConfigError(f"{name} is not a 0x prefixed 20-byte hex address: {value}")
    return HexAddress(value)


def parse_int(name: str, value: str) -> int:
    try:
        return int(value, 0)
    except ValueError as e:
        raise ConfigError(f"{name} is not an integer: {value}") from e


def parse_nonce(name: str, value: str) -> int:
    """Decimal nonce, zero padding allowed, or 0x prefixed hex."""
    try:
        if value.lower().startswith("0x"):
            return int(value, 16)
        return int(value, 10)
    except ValueError as e:
        raise ConfigError(f"{name} is not an integer: {value}") from e


def parse_decimal(name: str, value: str) -> Decimal:
    try:
        number = Decimal(value)
    except InvalidOperation as e:
        raise ConfigError(f"{name} is not a number: {value}") from e

    if not number.is_finite():
        raise ConfigError(f"{name} is not a finite number: {value}")
    return number


def parse_gwei(name: str, value: str) -> Decimal:
    gwei = parse_decimal(name, value)
    if gwei < 0:
        raise ConfigError(f"{name} cannot be negative: {gwei}")
    return gwei


def parse_json(name: str, value: str):
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{name} is not valid JSON: {e}") from e


@dataclass(frozen=True, slots=True)
class LinkConfig:
    """Configuration for one half of the staking link.

    Environment variables:

    - ``IS_FINALIZE``: ``true`` to run as the staking account (finalizer),
      anything else runs as the trading account (initiator)
    - ``HYPERLIQUID_TESTNET``: ``false`` for mainnet, testnet otherwise
    - ``NONCE``: Nonce override for the initiator; required for the finalizer
    - ``TRADING_PRIVATE_KEY``, ``TRADING_USER_ADDRESS``: Initiator key and the staking account address
    - ``STAKING_PRIVATE_KEY``, ``STAKING_USER_ADDRESS``: Finalizer key and the trading account address
    """

    role: LinkRole

    #: Key of the account signing this half
    private_key: str = field(repr=False)

    #: The other account
    counterparty: HexAddress

    testnet: bool

    nonce: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "LinkConfig":
        is_finalize = environ.get("IS_FINALIZE", "").strip().lower() == "true"
        testnet = environ.get("HYPERLIQUID_TESTNET", "").strip().lower() != "false"

        nonce_str = environ.get("NONCE", "").strip()
        nonce = parse_nonce("NONCE", nonce_str) if nonce_str else None
        if nonce is not None and not 0 <= nonce < 2**64:
            raise ConfigError(f"NONCE must be an unsigned 64-bit integer: {nonce}")

        if is_finalize:
            if nonce is None:
                raise ConfigError("NONCE is required with IS_FINALIZE=true: use the nonce printed by the trading account run")
            role = LinkRole.finalizer
            private_key = getenv_strict("STAKING_PRIVATE_KEY", environ)
            counterparty = parse_address("STAKING_USER_ADDRESS", getenv_strict("STAKING_USER_ADDRESS", environ))
        else:
            role = LinkRole.initiator
            private_key = getenv_strict("TRADING_PRIVATE_KEY", environ)
            counterparty = parse_address("TRADING_USER_ADDRESS", getenv_strict("TRADING_USER_ADDRESS", environ))

        return cls(
            role=role,
            private_key=private_key,
            counterparty=HexAddress(counterparty.lower()),
            testnet=testnet,
            nonce=nonce,
        )


@dataclass(frozen=True, slots=True)
class SignedAPIConfig:
    """Configuration for signing a message and calling an API with it.

    Environment variables:

    - ``ETH_RPC_URL``: JSON-RPC node, checked for connectivity
    - ``PRIVATE_KEY``: Signing key
    - ``TARGET_API_URL``: Where to POST
    - ``SIGN_MODE``: ``personal`` (default) or ``typed``
    - ``MESSAGE``: Personal message
    - ``TYPED_DATA_JSON``: EIP-712 document ``{domain, types, message}``, required for ``typed``
    - ``API_PAYLOAD_JSON``: Request body, defaults to ``{}``
    """

    rpc_url: str

    private_key: str = field(repr=False)

    api_url: str

    sign_mode: str

    message: str

    typed_data: Optional[dict]

    payload: dict

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "SignedAPIConfig":
        rpc_url = getenv_strict("ETH_RPC_URL", environ)
        private_key = getenv_strict("PRIVATE_KEY", environ)
        api_url = getenv_strict("TARGET_API_URL", environ)

        sign_mode = (environ.get("SIGN_MODE") or "personal").strip().lower()
        if sign_mode not in ("personal", "typed"):
            raise ConfigError("SIGN_MODE must be 'personal' or 'typed'")

        typed_data = None
        if sign_mode == "typed":
            typed_data = parse_json("TYPED_DATA_JSON", getenv_strict("TYPED_DATA_JSON", environ))
            if not isinstance(typed_data, dict):
                raise ConfigError("TYPED_DATA_JSON must be a JSON object")

        payload = parse_json("API_PAYLOAD_JSON", environ.get("API_PAYLOAD_JSON") or "{}")
        if not isinstance(payload, dict):
            raise ConfigError("API_PAYLOAD_JSON must be a JSON object")

        return cls(
            rpc_url=rpc_url,
            private_key=private_key,
            api_url=api_url,
            sign_mode=sign_mode,
            message=environ.get("MESSAGE") or "Hello from Python signer",
            typed_data=typed_data,
            payload=payload,
        )


@dataclass(frozen=True, slots=True)
class TransferConfig:
    """Configuration for a native token transfer.

    Environment variables:

    - ``ETH_RPC_URL``, ``CHAIN_ID``: JSON-RPC node and the chain it must be on
    - ``PRIVATE_KEY``: Sender key
    - ``TO_ADDRESS``, ``AMOUNT_ETH``: Receiver and amount in ether
    - ``MAX_PRIORITY_FEE_GWEI``: Default 2
    - ``MAX_FEE_GWEI``: Default 60
    - ``WAIT_FOR_RECEIPT``: ``1``, ``true`` or ``yes`` (default) to wait for the receipt
    """

    rpc_url: str

    chain_id: int

    private_key: str = field(repr=False)

    to_address: HexAddress

    amount_eth: Decimal

    max_priority_fee_gwei: Decimal = Decimal(2)

    max_fee_gwei: Decimal = Decimal(60)

    wait_for_receipt: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "TransferConfig":
        amount_eth = parse_decimal("AMOUNT_ETH", getenv_strict("AMOUNT_ETH", environ))
        if amount_eth <= 0:
            raise ConfigError(f"AMOUNT_ETH must be positive: {amount_eth}")

        max_priority_fee_gwei = parse_gwei("MAX_PRIORITY_FEE_GWEI", environ.get("MAX_PRIORITY_FEE_GWEI") or "2")
        max_fee_gwei = parse_gwei("MAX_FEE_GWEI", environ.get("MAX_FEE_GWEI") or "60")
        if max_priority_fee_gwei > max_fee_gwei:
            raise ConfigError(f"MAX_PRIORITY_FEE_GWEI {max_priority_fee_gwei} exceeds MAX_FEE_GWEI {max_fee_gwei}")

        wait = (environ.get("WAIT_FOR_RECEIPT") or "true").strip().lower()

        return cls(
            rpc_url=getenv_strict("ETH_RPC_URL", environ),
            chain_id=parse_int("CHAIN_ID", getenv_strict("CHAIN_ID", environ)),
            private_key=getenv_strict("PRIVATE_KEY", environ),
            to_address=parse_address("TO_ADDRESS", getenv_strict("TO_ADDRESS", environ)),
            amount_eth=amount_eth,
            max_priority_fee_gwei=max_priority_fee_gwei,
            max_fee_gwei=max_fee_gwei,
            wait_for_receipt=wait in ("1", "true", "yes"),
        )
