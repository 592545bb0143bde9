"""Core components for Seqlab: tag schema and BIOES decoding."""

from .schema import BioesPrefix, BioesTag, TagSchema, TokenLabel
from .decoder import decode, merge_entities, filter_non_entities

__all__ = ["BioesPrefix", "BioesTag", "TagSchema", "TokenLabel", "decode", "merge_entities", "filter_non_entities"]
