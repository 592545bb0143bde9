"""Data utilities for Seqlab."""

from .tokenizer import OffsetTokenizer, Token, tokenize_with_offsets

__all__ = ["OffsetTokenizer", "Token", "tokenize_with_offsets"]
