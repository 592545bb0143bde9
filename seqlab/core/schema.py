"""Schema definitions for BIOES tagging and decoded token labels."""

from typing import List, Dict, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BioesPrefix(str, Enum):
    """Position prefixes of the BIOES scheme."""
    B = "B"  # Beginning of entity
    I = "I"  # Inside entity
    O = "O"  # Outside entity
    E = "E"  # End of entity
    S = "S"  # Single-token entity


ENTITY_PREFIXES = (BioesPrefix.B, BioesPrefix.I, BioesPrefix.E, BioesPrefix.S)


class BioesTag(BaseModel):
    """Represents a single BIOES tag with prefix and entity type."""
    prefix: BioesPrefix
    entity_type: Optional[str] = None

    @model_validator(mode="after")
    def validate_entity_type(self) -> "BioesTag":
        if self.prefix == BioesPrefix.O and self.entity_type is not None:
            raise ValueError("O tags cannot have an entity type")
        if self.prefix in ENTITY_PREFIXES and not self.entity_type:
            raise ValueError(f"{self.prefix.value} tags must have an entity type")
        return self

    def __str__(self) -> str:
        if self.prefix == BioesPrefix.O:
            return "O"
        return f"{self.prefix.value}-{self.entity_type}"

    @classmethod
    def from_string(cls, tag_str: str) -> "BioesTag":
        """Create BioesTag from string representation like 'S-PER' or 'O'."""
        if tag_str == "O":
            return cls(prefix=BioesPrefix.O)

        if "-" not in tag_str:
            raise ValueError(f"Invalid tag format: {tag_str}")

        prefix_str, entity_type = tag_str.split("-", 1)
        return cls(prefix=BioesPrefix(prefix_str), entity_type=entity_type)

    @classmethod
    def outside(cls) -> "BioesTag":
        return cls(prefix=BioesPrefix.O)

    @classmethod
    def single(cls, entity_type: str) -> "BioesTag":
        return cls(prefix=BioesPrefix.S, entity_type=entity_type)


class TokenLabel(BaseModel):
    """A token (or merged entity) with its character offsets and label.

    Offsets are character positions in the original text; ``end`` is exclusive.
    Instances are immutable once created.
    """
    model_config = ConfigDict(frozen=True)

    text: str
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)
    label: str

    @model_validator(mode="after")
    def validate_offsets(self) -> "TokenLabel":
        if self.end < self.start:
            raise ValueError(f"end offset {self.end} precedes start offset {self.start}")
        return self

    @property
    def is_entity(self) -> bool:
        return self.label != "O"

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {"text": self.text, "start": self.start, "end": self.end, "label": self.label}


class TagSchema(BaseModel):
    """Defines the entity types and the BIOES label inventory built from them."""
    entity_types: List[str] = Field(..., min_length=1)
    description: Optional[str] = None

    @field_validator("entity_types")
    @classmethod
    def validate_entity_types(cls, v: List[str]) -> List[str]:
        if len(set(v)) != len(v):
            raise ValueError("Entity types must be unique")
        if any(not t for t in v):
            raise ValueError("Entity types must be non-empty")
        return v

    def get_all_tags(self) -> List[str]:
        """Get all possible tag strings for this schema."""
        tags = ["O"]
        for entity_type in self.entity_types:
            tags.extend(f"{prefix}-{entity_type}" for prefix in ("B", "I", "E", "S"))
        return tags

    def get_tag_to_id_mapping(self) -> Dict[str, int]:
        """Get mapping from tag strings to IDs."""
        return {tag: i for i, tag in enumerate(self.get_all_tags())}

    def get_id_to_tag_mapping(self) -> Dict[int, str]:
        """Get mapping from IDs to tag strings."""
        return {i: tag for i, tag in enumerate(self.get_all_tags())}

    @classmethod
    def create_standard_schema(cls, entity_types: List[str], description: Optional[str] = None) -> "TagSchema":
        """Create a standard schema with given entity types."""
        return cls(entity_types=entity_types, description=description)

    @classmethod
    def create_conll_schema(cls) -> "TagSchema":
        """Create the CoNLL-2003 schema (PER, LOC, ORG, MISC)."""
        return cls(
            entity_types=["PER", "LOC", "ORG", "MISC"],
            description="CoNLL-2003 named entity types"
        )
