"""Gas price and gas limit for EIP-1559 transactions.

Fee caps are given by the operator instead of being read from the chain.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from pprint import pformat

from web3 import Web3

logger = logging.getLogger(__name__)

#: Multiplier applied to the node's gas estimate
DEFAULT_GAS_LIMIT_BUFFER = Decimal("1.1")


class GasEstimationError(Exception):
    """The node could not estimate gas, usually because the transaction would fail."""


@dataclass
class GasPriceSuggestion:
    """EIP-1559 gas price caps."""

    max_priority_fee_per_gas: int

    max_fee_per_gas: int

    def __repr__(self):
        return f"<Gas priority:{self.max_priority_fee_per_gas} max:{self.max_fee_per_gas}>"

    def get_tx_gas_params(self) -> dict:
        """Get gas params for a type 2 transaction."""
        return {"maxPriorityFeePerGas": self.max_priority_fee_per_gas, "maxFeePerGas": self.max_fee_per_gas}

    def pformat(self) -> str:
        """Pretty format for logging."""

        def _format(value: int) -> str:
            return f"{value / 10**9:.2f}G ({value:,})"

        data = {
            "Max priority fee per gas": _format(self.max_priority_fee_per_gas),
            "Max fee per gas": _format(self.max_fee_per_gas),
        }
        return pformat(data)


def fixed_gas_price(max_priority_fee_gwei: Decimal, max_fee_gwei: Decimal) -> GasPriceSuggestion:
    """Gas price from operator given gwei caps."""
    max_priority_fee_per_gas = Web3.to_wei(max_priority_fee_gwei, "gwei")
    max_fee_per_gas = Web3.to_wei(max_fee_gwei, "gwei")
    assert max_priority_fee_per_gas <= max_fee_per_gas, f"Priority fee {max_priority_fee_gwei} gwei exceeds max fee {max_fee_gwei} gwei"
    return GasPriceSuggestion(max_priority_fee_per_gas=max_priority_fee_per_gas, max_fee_per_gas=max_fee_per_gas)


def apply_gas(tx: dict, suggestion: GasPriceSuggestion) -> dict:
    """Apply gas fees to a raw transaction dict.

    :return:
        The same transaction dict, modified in place
    """
    assert isinstance(suggestion, GasPriceSuggestion)
    tx.update(suggestion.get_tx_gas_params())
    return tx


def estimate_gas_limit(web3: Web3, tx: dict, buffer: Decimal = DEFAULT_GAS_LIMIT_BUFFER) -> int:
    """Ask the node for a gas estimate and add a safety margin.

    :param tx:
        Must contain ``from``, ``to`` and ``value``

    :raise GasEstimationError:
        The node refused to estimate
    """
    estimate_params = {k: tx[k] for k in ("from", "to", "value", "data") if k in tx}
    try:
        gas = web3.eth.estimate_gas(estimate_params)
    except Exception as e:
        raise GasEstimationError(f"Gas estimation failed: {e}\nTransaction: {pformat(estimate_params)}") from e

    gas_limit = int(gas * buffer)
    logger.info("Gas estimate %d, using limit %d", gas, gas_limit)
    return gas_limit
