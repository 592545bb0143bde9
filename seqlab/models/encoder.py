"""Sequence encoders driving the recurrent cells over ordered inputs."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import torch
import torch.nn as nn

from .cells import CellParams, CellState, CellType, cell_type_of, new_params, state_class, step
from ..core.exceptions import EncoderStateError

logger = logging.getLogger(__name__)

Inputs = Union[torch.Tensor, Sequence[torch.Tensor]]


class SequenceEncoder:
    """
    Runs a recurrent cell over one sequence, keeping every step state.

    An encoder holds the state history of exactly one sequence. Create a new
    instance for each sequence; feeding a second sequence to the same encoder
    would continue the first one's recurrence.
    """

    def __init__(self, params: CellParams):
        self.params = params
        self.cell_type = cell_type_of(params)
        self.states: List[CellState] = []

    def set_initial_state(self, state: CellState) -> None:
        """
        Seed the recurrence with an externally supplied state.

        Raises:
            EncoderStateError: if any input has already been processed
        """
        if self.states:
            raise EncoderStateError(
                f"{self.cell_type.value}: the initial state must be set before any input"
            )
        expected = state_class(self.cell_type)
        if not isinstance(state, expected):
            raise TypeError(
                f"{self.cell_type.value}: initial state must be a "
                f"{expected.__name__}, got {type(state).__name__}"
            )
        self.states.append(state)

    def forward(self, xs: Inputs) -> List[torch.Tensor]:
        """
        Process the inputs in order.

        Args:
            xs: Input vectors, a sequence of (input_size,) tensors or an
                (n, input_size) tensor

        Returns:
            Output vectors, one per input

        Raises:
            ValueError: if `xs` is a single 1-D tensor
        """
        if isinstance(xs, torch.Tensor) and xs.dim() != 2:
            raise ValueError(
                f"Expected an (n, input_size) tensor or a sequence of vectors, "
                f"got a tensor of shape {tuple(xs.shape)}"
            )
        ys = []
        for x in xs:
            state = step(self.params, x, self.last_state())
            self.states.append(state)
            ys.append(state.y)
        return ys

    def last_state(self) -> Optional[CellState]:
        """Return the most recent state, or None if nothing was processed yet."""
        if not self.states:
            return None
        return self.states[-1]


def encode(
    params: CellParams,
    xs: Inputs,
    initial_state: Optional[CellState] = None,
) -> Tuple[List[torch.Tensor], List[CellState]]:
    """
    Encode one sequence with a fresh encoder.

    Args:
        params: Cell parameters
        xs: Input vectors
        initial_state: Optional state to start the recurrence from

    Returns:
        Tuple of (output vectors, state history). The history starts with
        `initial_state` when one is given.
    """
    encoder = SequenceEncoder(params)
    if initial_state is not None:
        encoder.set_initial_state(initial_state)
    ys = encoder.forward(xs)
    return ys, encoder.states


def encode_batch(
    params: CellParams,
    sequences: Sequence[Inputs],
    initial_states: Optional[Sequence[Optional[CellState]]] = None,
    max_workers: Optional[int] = None,
) -> List[Tuple[List[torch.Tensor], List[CellState]]]:
    """
    Encode independent sequences concurrently, one encoder per sequence.

    Args:
        params: Cell parameters shared (read-only) by all workers
        sequences: Input sequences
        initial_states: Optional initial state per sequence
        max_workers: Number of worker threads (defaults to the CPU count)

    Returns:
        One (outputs, states) pair per sequence, in input order
    """
    if initial_states is None:
        initial_states = [None] * len(sequences)
    if len(initial_states) != len(sequences):
        raise ValueError("Number of initial states must match number of sequences")
    if not sequences:
        return []

    max_workers = max_workers or os.cpu_count() or 1
    logger.debug(f"Encoding {len(sequences)} sequences on {max_workers} workers")

    # Grad mode is thread-local; workers take the caller's.
    grad_enabled = torch.is_grad_enabled()

    def encode_one(args):
        with torch.set_grad_enabled(grad_enabled):
            return encode(params, *args)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(encode_one, zip(sequences, initial_states)))


class MergeMode(str, Enum):
    """How forward and backward outputs of a bidirectional encoder are combined."""
    CONCAT = "concat"
    SUM = "sum"
    PROD = "prod"
    AVG = "avg"


@dataclass
class BiEncoding:
    """Result of a bidirectional pass.

    `backward_states` are kept in processing order, i.e. the first entry
    belongs to the last input.
    """
    outputs: List[torch.Tensor]
    forward_states: List[CellState]
    backward_states: List[CellState]


class BiEncoder(nn.Module):
    """Bidirectional encoder: one cell reads left-to-right, another right-to-left."""

    def __init__(
        self,
        cell_type: Union[CellType, str],
        input_size: int,
        hidden_size: int,
        merge_mode: Union[MergeMode, str] = MergeMode.CONCAT,
    ):
        super().__init__()
        self.cell_type = CellType(cell_type)
        self.merge_mode = MergeMode(merge_mode)
        self.hidden_size = hidden_size
        self.forward_params = new_params(self.cell_type, input_size, hidden_size, reset=True)
        self.backward_params = new_params(self.cell_type, input_size, hidden_size, reset=True)

    @property
    def output_size(self) -> int:
        if self.merge_mode == MergeMode.CONCAT:
            return 2 * self.hidden_size
        return self.hidden_size

    def encode(self, xs: Inputs) -> BiEncoding:
        xs = list(xs)
        fw_ys, fw_states = encode(self.forward_params, xs)
        bw_ys, bw_states = encode(self.backward_params, xs[::-1])
        bw_ys = bw_ys[::-1]
        outputs = [self._merge(fw, bw) for fw, bw in zip(fw_ys, bw_ys)]
        return BiEncoding(outputs=outputs, forward_states=fw_states, backward_states=bw_states)

    def forward(self, xs: Inputs) -> List[torch.Tensor]:
        return self.encode(xs).outputs

    def _merge(self, fw: torch.Tensor, bw: torch.Tensor) -> torch.Tensor:
        if self.merge_mode == MergeMode.CONCAT:
            return torch.cat([fw, bw], dim=-1)
        if self.merge_mode == MergeMode.SUM:
            return fw + bw
        if self.merge_mode == MergeMode.PROD:
            return fw * bw
        return (fw + bw) / 2

    def extra_repr(self):
        return f'cell_type={self.cell_type.value}, hidden_size={self.hidden_size}, merge_mode={self.merge_mode.value}'
