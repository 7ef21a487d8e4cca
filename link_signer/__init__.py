"""Sign EIP-712 typed data and personal messages, and link Hyperliquid staking accounts.

- :py:mod:`link_signer.eip_712` - typed data hashing
- :py:mod:`link_signer.signing` - signing and local recovery
- :py:mod:`link_signer.hyperliquid.link` - the two-party staking link handshake
"""
