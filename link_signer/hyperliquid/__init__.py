"""Hyperliquid protocol integration.

See :py:mod:`link_signer.hyperliquid.link` for linking a trading account to a staking account.
"""
