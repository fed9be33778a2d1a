"""Analyze creative-coding sketches and generate the NFT contracts that embed them."""

__version__ = "0.1.0"
