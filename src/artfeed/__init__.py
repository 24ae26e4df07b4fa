"""Artfeed - scheduled artist and NFT posts for Discord and Telegram."""

__version__ = "0.1.0"
