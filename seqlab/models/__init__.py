"""Recurrent models for Seqlab."""

from .cells import CellType, RANParams, DeltaRNNParams, RANState, DeltaRNNState, step, new_params
from .encoder import SequenceEncoder, BiEncoder, MergeMode, encode, encode_batch
from .importance import importance_scores, importance_matrix
from .normalization import LayerNorm, AdaNorm
from .labeler import LabelerConfig, SequenceLabeler

__all__ = [
    "CellType",
    "RANParams",
    "DeltaRNNParams",
    "RANState",
    "DeltaRNNState",
    "step",
    "new_params",
    "SequenceEncoder",
    "BiEncoder",
    "MergeMode",
    "encode",
    "encode_batch",
    "importance_scores",
    "importance_matrix",
    "LayerNorm",
    "AdaNorm",
    "LabelerConfig",
    "SequenceLabeler",
]
