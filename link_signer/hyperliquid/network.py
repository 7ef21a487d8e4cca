"""Hyperliquid network selection.

Mainnet and testnet differ in the chain name that goes into signed actions,
the chain id used in the EIP-712 signing domain and the API endpoints.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class HyperliquidNetwork:
    """Per-network constants passed explicitly to signing and submission."""

    #: ``hyperliquidChain`` field of user signed actions
    hyperliquid_chain: str

    #: Hex chain id used in the EIP-712 domain of user signed actions
    signature_chain_id: str

    #: Exchange API base URL
    api_url: str

    #: Web app URL, sent as ``Origin`` and ``Referer``
    app_url: str

    @property
    def exchange_url(self) -> str:
        return f"{self.api_url}/exchange"

    def get_signature_chain_id(self) -> int:
        return int(self.signature_chain_id, 16)


#: Hyperliquid mainnet
HYPERLIQUID_MAINNET = HyperliquidNetwork(
    hyperliquid_chain="Mainnet",
    signature_chain_id="0x1",
    api_url="https://api-ui.hyperliquid.xyz",
    app_url="https://app.hyperliquid.xyz",
)

#: Hyperliquid testnet, signs with chain id 998
HYPERLIQUID_TESTNET = HyperliquidNetwork(
    hyperliquid_chain="Testnet",
    signature_chain_id="0x3e6",
    api_url="https://api-ui.hyperliquid-testnet.xyz",
    app_url="https://app.hyperliquid-testnet.xyz",
)


def get_hyperliquid_network(testnet: bool) -> HyperliquidNetwork:
    if testnet:
        return HYPERLIQUID_TESTNET
    return HYPERLIQUID_MAINNET
