"""
Seqlab - recurrent sequence labeling core

Gated recurrent cells (RAN, DeltaRNN) with per-step state history and
importance attribution, plus BIOES decoding into entity spans.
"""

from .core.schema import BioesTag, TagSchema, TokenLabel
from .core.decoder import decode, merge_entities, filter_non_entities
from .core.exceptions import SeqlabError, EncoderStateError
from .models.cells import CellType, RANParams, DeltaRNNParams, RANState, DeltaRNNState, step
from .models.encoder import SequenceEncoder, BiEncoder, encode, encode_batch
from .models.importance import importance_scores, importance_matrix
from .models.labeler import LabelerConfig, SequenceLabeler

__version__ = "0.1.0"
__all__ = [
    "BioesTag",
    "TagSchema",
    "TokenLabel",
    "decode",
    "merge_entities",
    "filter_non_entities",
    "SeqlabError",
    "EncoderStateError",
    "CellType",
    "RANParams",
    "DeltaRNNParams",
    "RANState",
    "DeltaRNNState",
    "step",
    "SequenceEncoder",
    "BiEncoder",
    "encode",
    "encode_batch",
    "importance_scores",
    "importance_matrix",
    "LabelerConfig",
    "SequenceLabeler",
]
