"""Gated recurrent cells: RAN and DeltaRNN.

RAN (Recurrent Additive Network):
  inG  = sigmoid(W_in @ x + R_in @ y_prev + b_in)
  forG = sigmoid(W_for @ x + R_for @ y_prev + b_for)
  cand = W_cand @ x + b_cand
  c    = inG * cand + forG * c_prev
  y    = tanh(c)

DeltaRNN:
  d1 = beta1 * (W @ x) + beta2 * (R @ y_prev)
  d2 = alpha * (W @ x) * (R @ y_prev)
  c  = tanh(d1 + d2 + b)
  p  = sigmoid(W @ x + b_part)
  y  = tanh(p * c + (1 - p) * y_prev)

On the first step there is no previous state: recurrent terms, the forget
contribution, d2 and the (1 - p) interpolation are all left out.

A step is a pure function of (params, x, previous state) and returns a new
state record holding every intermediate value, so a whole sequence history
can be inspected afterwards.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Union

import torch
import torch.nn as nn
import torch.nn.functional as F


__all__ = [
    'CellType',
    'RANParams',
    'DeltaRNNParams',
    'RANState',
    'DeltaRNNState',
    'ran_step',
    'delta_rnn_step',
    'cell_type_of',
    'step',
    'new_params',
    'state_class',
]


class CellType(str, Enum):
    """The closed set of recurrent cell variants."""
    RAN = "ran"
    DELTA_RNN = "deltarnn"


# ============================================================================
# Parameters
# ============================================================================

class RANParams(nn.Module):
    """
    Parameters of a RAN cell.

    Arguments:
      input_size: int, the feature dimension of the input.
      output_size: int, the feature dimension of the output and cell.

    Variables:
      w_in, w_in_rec, b_in: input gate kernel (out, in), recurrent kernel
        (out, out) and bias (out).
      w_for, w_for_rec, b_for: forget gate kernel, recurrent kernel and bias.
      w_cand, b_cand: candidate kernel (out, in) and bias (out).

    All parameters start at zero, call `reset_parameters` for a random init.
    """

    cell_type = CellType.RAN

    def __init__(self, input_size: int, output_size: int):
        super().__init__()
        self.input_size = input_size
        self.output_size = output_size

        self.w_in = nn.Parameter(torch.zeros(output_size, input_size))
        self.w_in_rec = nn.Parameter(torch.zeros(output_size, output_size))
        self.b_in = nn.Parameter(torch.zeros(output_size))
        self.w_for = nn.Parameter(torch.zeros(output_size, input_size))
        self.w_for_rec = nn.Parameter(torch.zeros(output_size, output_size))
        self.b_for = nn.Parameter(torch.zeros(output_size))
        self.w_cand = nn.Parameter(torch.zeros(output_size, input_size))
        self.b_cand = nn.Parameter(torch.zeros(output_size))

    def reset_parameters(self):
        """Xavier-uniform input kernels, orthogonal recurrent kernels, zero biases."""
        for kernel in (self.w_in, self.w_for, self.w_cand):
            nn.init.xavier_uniform_(kernel)
        for kernel in (self.w_in_rec, self.w_for_rec):
            nn.init.orthogonal_(kernel)
        for bias in (self.b_in, self.b_for, self.b_cand):
            nn.init.zeros_(bias)

    def extra_repr(self):
        return f'input_size={self.input_size}, output_size={self.output_size}'


class DeltaRNNParams(nn.Module):
    """
    Parameters of a DeltaRNN cell.

    Arguments:
      input_size: int, the feature dimension of the input.
      output_size: int, the feature dimension of the output.

    Variables:
      w: input kernel (out, in).
      w_rec: recurrent kernel (out, out).
      b: candidate bias (out).
      b_part: partition gate bias (out).
      alpha, beta1, beta2: elementwise mixing weights (out).
    """

    cell_type = CellType.DELTA_RNN

    def __init__(self, input_size: int, output_size: int):
        super().__init__()
        self.input_size = input_size
        self.output_size = output_size

        self.w = nn.Parameter(torch.zeros(output_size, input_size))
        self.w_rec = nn.Parameter(torch.zeros(output_size, output_size))
        self.b = nn.Parameter(torch.zeros(output_size))
        self.b_part = nn.Parameter(torch.zeros(output_size))
        self.alpha = nn.Parameter(torch.zeros(output_size))
        self.beta1 = nn.Parameter(torch.zeros(output_size))
        self.beta2 = nn.Parameter(torch.zeros(output_size))

    def reset_parameters(self):
        """Xavier-uniform/orthogonal kernels, zero biases, unit mixing weights."""
        nn.init.xavier_uniform_(self.w)
        nn.init.orthogonal_(self.w_rec)
        nn.init.zeros_(self.b)
        nn.init.zeros_(self.b_part)
        for weight in (self.alpha, self.beta1, self.beta2):
            nn.init.ones_(weight)

    def extra_repr(self):
        return f'input_size={self.input_size}, output_size={self.output_size}'


CellParams = Union[RANParams, DeltaRNNParams]


# ============================================================================
# States
# ============================================================================

@dataclass
class RANState:
    """Intermediate values of one RAN step."""
    in_gate: torch.Tensor
    forget_gate: torch.Tensor
    candidate: torch.Tensor
    cell: torch.Tensor
    y: torch.Tensor


@dataclass
class DeltaRNNState:
    """Intermediate values of one DeltaRNN step. `d2` is None on the first step."""
    d1: torch.Tensor
    d2: Optional[torch.Tensor]
    candidate: torch.Tensor
    partition: torch.Tensor
    y: torch.Tensor


CellState = Union[RANState, DeltaRNNState]


# ============================================================================
# Steps
# ============================================================================

def ran_step(params: RANParams, x: torch.Tensor, prev: Optional[RANState] = None) -> RANState:
    if prev is None:
        in_gate = torch.sigmoid(F.linear(x, params.w_in, params.b_in))
        forget_gate = torch.sigmoid(F.linear(x, params.w_for, params.b_for))
    else:
        in_gate = torch.sigmoid(
            F.linear(x, params.w_in, params.b_in) + F.linear(prev.y, params.w_in_rec))
        forget_gate = torch.sigmoid(
            F.linear(x, params.w_for, params.b_for) + F.linear(prev.y, params.w_for_rec))
    candidate = F.linear(x, params.w_cand, params.b_cand)

    cell = in_gate * candidate
    if prev is not None:
        cell = cell + forget_gate * prev.cell

    return RANState(
        in_gate=in_gate,
        forget_gate=forget_gate,
        candidate=candidate,
        cell=cell,
        y=torch.tanh(cell))


def delta_rnn_step(params: DeltaRNNParams, x: torch.Tensor, prev: Optional[DeltaRNNState] = None) -> DeltaRNNState:
    wx = F.linear(x, params.w)
    partition = torch.sigmoid(wx + params.b_part)

    if prev is None:
        d1 = params.beta1 * wx
        d2 = None
        candidate = torch.tanh(d1 + params.b)
        y = torch.tanh(partition * candidate)
    else:
        wy_rec = F.linear(prev.y, params.w_rec)
        d1 = params.beta1 * wx + params.beta2 * wy_rec
        d2 = params.alpha * wx * wy_rec
        candidate = torch.tanh(d1 + d2 + params.b)
        y = torch.tanh(partition * candidate + (1 - partition) * prev.y)

    return DeltaRNNState(d1=d1, d2=d2, candidate=candidate, partition=partition, y=y)


_STEP_FUNCTIONS: Dict[CellType, Callable] = {
    CellType.RAN: ran_step,
    CellType.DELTA_RNN: delta_rnn_step,
}

_PARAMS_CLASSES = {
    CellType.RAN: RANParams,
    CellType.DELTA_RNN: DeltaRNNParams,
}

_STATE_CLASSES = {
    CellType.RAN: RANState,
    CellType.DELTA_RNN: DeltaRNNState,
}


def cell_type_of(params: CellParams) -> CellType:
    """Returns the variant tag of `params`, raising TypeError for unknown objects."""
    cell_type = getattr(params, 'cell_type', None)
    if cell_type not in _STEP_FUNCTIONS or not isinstance(params, _PARAMS_CLASSES[cell_type]):
        raise TypeError(f'Unsupported cell parameters: {type(params).__name__}')
    return cell_type


def step(params: CellParams, x: torch.Tensor, prev: Optional[CellState] = None) -> CellState:
    """
    Runs one recurrent step of whichever variant `params` belongs to.

    Arguments:
        params: RANParams or DeltaRNNParams.
        x: Tensor, the input vector. Dimensions (input_size).
        prev: (optional) the state of the previous step, None on the first step.

    Returns:
        The new state record of the matching variant.
    """
    cell_type = cell_type_of(params)
    if prev is not None and not isinstance(prev, _STATE_CLASSES[cell_type]):
        raise TypeError(
            f'{cell_type.value} step cannot continue from a {type(prev).__name__}')
    return _STEP_FUNCTIONS[cell_type](params, x, prev)


def new_params(cell_type: Union[CellType, str], input_size: int, output_size: int,
               reset: bool = False) -> CellParams:
    """Creates zero-initialized parameters of `cell_type`, randomly initialized if `reset`."""
    params = _PARAMS_CLASSES[CellType(cell_type)](input_size, output_size)
    if reset:
        params.reset_parameters()
    return params


def state_class(cell_type: Union[CellType, str]) -> type:
    """Returns the state record class produced by `cell_type` steps."""
    return _STATE_CLASSES[CellType(cell_type)]
