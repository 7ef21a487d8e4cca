"""Hyperliquid staking account linking.

Hyperliquid lets a trading account be linked to a staking account,
so that the staking account's stake counts towards the trading account's fee tier.
The link is made of two ``linkStakingUser`` user signed actions:

1. **Initiator** (the trading account) signs ``isFinalize=false``, ``user`` = staking account,
   with a fresh nonce

2. **Finalizer** (the staking account) signs ``isFinalize=true``, ``user`` = trading account,
   with **the same nonce**

The two halves are signed by different keys, usually in different processes
or on different machines. Nothing is shared between them except the nonce,
which the operator copies from the initiator run output to the finalizer run.
The nonce is what ties the two submissions into one link, so the finalizer
refuses to run without one: a made-up nonce could never match.

Example:

.. code-block:: python

    from link_signer.hotwallet import HotWallet
    from link_signer.hyperliquid.link import LinkRole, sign_and_submit_link
    from link_signer.hyperliquid.network import HYPERLIQUID_TESTNET

    # Run 1, trading account
    trading = HotWallet.from_private_key(trading_key)
    result = sign_and_submit_link(trading, LinkRole.initiator, staking_address, HYPERLIQUID_TESTNET)
    print("Give this nonce to the staking account:", result.nonce)

    # Run 2, staking account
    staking = HotWallet.from_private_key(staking_key)
    sign_and_submit_link(staking, LinkRole.finalizer, trading_address, HYPERLIQUID_TESTNET, nonce=result.nonce)
"""

import enum
import logging
import re
import time
from dataclasses import dataclass

from eth_typing import HexAddress
from requests import Response, Session

from link_signer.eip_712 import Domain, TypeSchema, eip712_encode_hash
from link_signer.hotwallet import HotWallet
from link_signer.hyperliquid.network import HyperliquidNetwork
from link_signer.hyperliquid.session import DEFAULT_SUBMISSION_TIMEOUT, create_hyperliquid_session, submit_link_payload
from link_signer.signing import Signature

logger = logging.getLogger(__name__)

#: Action ``type`` field
LINK_STAKING_USER_ACTION = "linkStakingUser"

#: EIP-712 primary type of the link action
LINK_STAKING_USER_PRIMARY_TYPE = "HyperliquidTransaction:LinkStakingUser"

#: Field order is the signing order, not the JSON key order
LINK_STAKING_USER_TYPES: TypeSchema = {
    LINK_STAKING_USER_PRIMARY_TYPE: [
        {"name": "hyperliquidChain", "type": "string"},
        {"name": "user", "type": "address"},
        {"name": "isFinalize", "type": "bool"},
        {"name": "nonce", "type": "uint64"},
    ],
}

#: EIP-712 domain name for user signed actions.
#:
#: Not ``HyperliquidTransaction``, which is the type prefix.
USER_SIGNED_ACTION_DOMAIN_NAME = "HyperliquidSignTransaction"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_LOWERCASE_ADDRESS = re.compile(r"^0x[0-9a-f]{40}$")


class ProtocolError(Exception):
    """The link handshake cannot continue.

    - The finalizer was not given the initiator's nonce

    - The exchange rejected a submission, e.g. because the nonces do not match
    """


class LinkRole(enum.Enum):
    """Which half of the link this process signs."""

    #: The trading account, starts the link
    initiator = "initiator"

    #: The staking account, completes the link with the initiator's nonce
    finalizer = "finalizer"


@dataclass(frozen=True, slots=True)
class LinkAction:
    """One half of the link handshake."""

    #: ``Testnet`` or ``Mainnet``
    hyperliquid_chain: str

    #: ``False`` for the initiator, ``True`` for the finalizer
    is_finalize: bool

    #: Shared by both halves
    nonce: int

    #: Hex chain id of the signing domain
    signature_chain_id: str

    #: The other account, lowercased
    user: HexAddress

    type: str = LINK_STAKING_USER_ACTION

    def __post_init__(self):
        assert self.hyperliquid_chain in ("Testnet", "Mainnet"), f"Bad chain: {self.hyperliquid_chain}"
        assert type(self.nonce) == int and 0 <= self.nonce < 2**64, f"Nonce must be uint64: {self.nonce}"
        assert _LOWERCASE_ADDRESS.match(self.user), f"User must be a lowercased address: {self.user}"

    def to_wire(self) -> dict:
        """JSON action as the exchange expects it."""
        return {
            "hyperliquidChain": self.hyperliquid_chain,
            "isFinalize": self.is_finalize,
            "nonce": self.nonce,
            "signatureChainId": self.signature_chain_id,
            "type": self.type,
            "user": self.user,
        }


@dataclass(slots=True)
class LinkResult:
    """Outcome of one signed and submitted half."""

    role: LinkRole

    #: Signer address
    signer: HexAddress

    action: LinkAction

    signature: Signature

    payload: dict

    #: Raw exchange response
    response: Response

    @property
    def nonce(self) -> int:
        """Hand this over to the other account."""
        return self.action.nonce


def generate_nonce() -> int:
    """Wall-clock milliseconds.

    Only one link per account pair is in flight at a time, so this is unique enough.
    The exchange decides whether it accepts the nonce.
    """
    return int(time.time() * 1000)


def build_initiator_action(network: HyperliquidNetwork, finalizer_address: HexAddress, nonce: int | None = None) -> LinkAction:
    """Create the first half of the link, signed by the trading account.

    :param finalizer_address:
        Staking account address

    :param nonce:
        Use a given nonce instead of the current time
    """
    if nonce is None:
        nonce = generate_nonce()
    return LinkAction(
        hyperliquid_chain=network.hyperliquid_chain,
        is_finalize=False,
        nonce=nonce,
        signature_chain_id=network.signature_chain_id,
        user=finalizer_address.lower(),
    )


def build_finalizer_action(network: HyperliquidNetwork, initiator_address: HexAddress, nonce: int | None) -> LinkAction:
    """Create the second half of the link, signed by the staking account.

    :param initiator_address:
        Trading account address

    :param nonce:
        The nonce the initiator used

    :raise ProtocolError:
        No nonce given
    """
    if nonce is None:
        raise ProtocolError("Finalizing a link needs the nonce the initiator used, it cannot be generated")
    return LinkAction(
        hyperliquid_chain=network.hyperliquid_chain,
        is_finalize=True,
        nonce=nonce,
        signature_chain_id=network.signature_chain_id,
        user=initiator_address.lower(),
    )


def build_link_action(role: LinkRole, network: HyperliquidNetwork, counterparty: HexAddress, nonce: int | None = None) -> LinkAction:
    match role:
        case LinkRole.initiator:
            return build_initiator_action(network, counterparty, nonce)
        case LinkRole.finalizer:
            return build_finalizer_action(network, counterparty, nonce)
        case _:
            raise NotImplementedError(f"Unknown role: {role}")


def get_link_domain(action: LinkAction) -> Domain:
    return Domain(
        name=USER_SIGNED_ACTION_DOMAIN_NAME,
        version="1",
        chain_id=int(action.signature_chain_id, 16),
        verifying_contract=ZERO_ADDRESS,
    )


def get_link_message(action: LinkAction) -> dict:
    return {
        "hyperliquidChain": action.hyperliquid_chain,
        "user": action.user,
        "isFinalize": action.is_finalize,
        "nonce": action.nonce,
    }


def get_link_digest(action: LinkAction) -> bytes:
    """The EIP-712 hash the exchange recovers the signer from."""
    return eip712_encode_hash(
        get_link_domain(action),
        LINK_STAKING_USER_TYPES,
        LINK_STAKING_USER_PRIMARY_TYPE,
        get_link_message(action),
    )


def sign_link_action(wallet: HotWallet, action: LinkAction) -> Signature:
    """Sign a link action.

    The signature is recovered locally before it is returned.
    """
    digest = get_link_digest(action)
    return wallet.sign_digest(digest)


def create_link_payload(action: LinkAction, signature: Signature) -> dict:
    """Wrap a signed action into the exchange request body."""
    return {
        "action": action.to_wire(),
        "expiresAfter": None,
        "isFrontend": True,
        "nonce": action.nonce,
        "signature": signature.as_dict(),
        "vaultAddress": None,
    }


def check_link_response(response: Response):
    """Check the exchange accepted the submission.

    The exchange answers HTTP 200 with ``{"status": "err", "response": "..."}``
    for rejected actions.

    :raise ProtocolError:
        Rejected
    """
    if not response.ok:
        raise ProtocolError(f"Exchange rejected link submission, HTTP {response.status_code}: {response.text}")

    try:
        data = response.json()
    except ValueError as e:
        raise ProtocolError(f"Exchange returned non-JSON response: {response.text}") from e

    if isinstance(data, dict) and data.get("status") == "err":
        raise ProtocolError(f"Exchange rejected link submission: {data.get('response')}")


def sign_and_submit_link(
    wallet: HotWallet,
    role: LinkRole,
    counterparty: HexAddress,
    network: HyperliquidNetwork,
    nonce: int | None = None,
    session: Session | None = None,
    timeout: float = DEFAULT_SUBMISSION_TIMEOUT,
) -> LinkResult:
    """Sign and submit one half of the link.

    :param wallet:
        Trading account for the initiator, staking account for the finalizer

    :param counterparty:
        The other account

    :param nonce:
        Required for the finalizer. Optional for the initiator.

    :param session:
        Created for the network if not given

    :return:
        Submission result. Its :py:attr:`LinkResult.nonce` must be passed to the finalizer run.

    :raise ProtocolError:
        Missing nonce for the finalizer, or the exchange rejected the submission
    """
    action = build_link_action(role, network, counterparty, nonce)

    logger.info("Signing with account: %s", wallet.address)
    logger.info("User: %s", action.user)
    logger.info("isFinalize: %s", action.is_finalize)
    logger.info("Nonce: %d", action.nonce)

    signature = sign_link_action(wallet, action)
    logger.info("Signature: %s", signature.as_dict())

    payload = create_link_payload(action, signature)

    if session is None:
        session = create_hyperliquid_session(network)

    response = submit_link_payload(session, network, payload, timeout=timeout)
    logger.info("Response data: %s", response.text)
    check_link_response(response)

    return LinkResult(
        role=role,
        signer=wallet.address,
        action=action,
        signature=signature,
        payload=payload,
        response=response,
    )
