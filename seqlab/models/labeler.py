"""Recurrent sequence labeler: BiEncoder -> (LayerNorm) -> linear scorer."""

import logging
from typing import Callable, List, Optional, Sequence, Tuple, Union

import torch
import torch.nn as nn
from pydantic import BaseModel, Field, field_validator

from .cells import CellType
from .encoder import BiEncoder, Inputs, MergeMode
from .normalization import LayerNorm
from ..core.decoder import decode
from ..core.schema import TagSchema, TokenLabel
from ..data.tokenizer import OffsetTokenizer, Token

logger = logging.getLogger(__name__)

Embedder = Callable[[List[str]], Inputs]


class LabelerConfig(BaseModel):
    """Configuration of a SequenceLabeler."""
    cell_type: CellType = CellType.RAN
    input_size: int = Field(..., gt=0)
    hidden_size: int = Field(..., gt=0)
    labels: List[str] = Field(..., min_length=1)
    merge_mode: MergeMode = MergeMode.CONCAT
    use_layer_norm: bool = False

    @field_validator("labels")
    @classmethod
    def validate_labels(cls, v: List[str]) -> List[str]:
        if len(set(v)) != len(v):
            raise ValueError("Labels must be unique")
        return v

    @classmethod
    def from_schema(cls, tag_schema: TagSchema, input_size: int, hidden_size: int, **kwargs) -> "LabelerConfig":
        """Create a config whose labels are the BIOES inventory of `tag_schema`."""
        return cls(
            input_size=input_size,
            hidden_size=hidden_size,
            labels=tag_schema.get_all_tags(),
            **kwargs,
        )


class SequenceLabeler(nn.Module):
    """Labels each token of a sequence from its input vector.

    Decoding is greedy (argmax over emission scores); a CRF, when used, sits
    outside this module and consumes `forward`'s emission scores.
    """

    def __init__(self, config: LabelerConfig):
        super().__init__()
        self.config = config
        self.labels = list(config.labels)
        self.num_labels = len(self.labels)

        self.encoder = BiEncoder(
            config.cell_type,
            config.input_size,
            config.hidden_size,
            merge_mode=config.merge_mode,
        )
        self.norm = LayerNorm(self.encoder.output_size) if config.use_layer_norm else nn.Identity()
        self.scorer = nn.Linear(self.encoder.output_size, self.num_labels)

        logger.info(
            f"SequenceLabeler initialized: {config.cell_type.value} cells, "
            f"{config.input_size}->{self.encoder.output_size}, {self.num_labels} labels"
        )

    def forward(self, vectors: Inputs) -> torch.Tensor:
        """
        Compute emission scores.

        Args:
            vectors: One input vector per token

        Returns:
            Tensor of shape (num_tokens, num_labels)
        """
        outputs = self.encoder(vectors)
        if not outputs:
            return self.scorer.weight.new_zeros((0, self.num_labels))
        hidden = self.norm(torch.stack(outputs))
        return self.scorer(hidden)

    def predict(self, vectors: Inputs) -> List[int]:
        """Return the best label index for each token."""
        with torch.no_grad():
            scores = self.forward(vectors)
        return scores.argmax(dim=-1).tolist()

    def label_tokens(
        self,
        tokens: Sequence[Union[Token, Tuple[str, int, int]]],
        vectors: Inputs,
    ) -> List[TokenLabel]:
        """
        Attach a predicted label to each token.

        Args:
            tokens: Tokens (or (text, start, end) tuples) aligned with `vectors`
            vectors: One input vector per token

        Returns:
            One TokenLabel per token
        """
        vectors = list(vectors)
        if len(tokens) != len(vectors):
            raise ValueError("Number of tokens must match number of input vectors")

        result = []
        for token, label_id in zip(tokens, self.predict(vectors)):
            text, start, end = (token.text, token.start, token.end) if isinstance(token, Token) else token
            result.append(TokenLabel(text=text, start=start, end=end, label=self.labels[label_id]))
        return result

    def analyze(
        self,
        text: str,
        embed: Embedder,
        merge: bool = True,
        filter_not_entities: bool = False,
        tokenizer: Optional[OffsetTokenizer] = None,
    ) -> List[TokenLabel]:
        """
        Tokenize, embed, label and decode a raw text.

        Args:
            text: Input text
            embed: Maps the token strings to one input vector each
            merge: Merge B-I-E runs into entity spans
            filter_not_entities: Drop tokens labeled 'O'
            tokenizer: Tokenizer to use (a default OffsetTokenizer if None)

        Returns:
            Decoded token labels
        """
        tokenizer = tokenizer or OffsetTokenizer()
        tokens = tokenizer.tokenize(text)
        if not tokens:
            return []
        vectors = embed([token.text for token in tokens])
        labeled = self.label_tokens(tokens, vectors)
        return decode(labeled, merge=merge, filter_not_entities=filter_not_entities)
