"""Importance attribution over the state history of a RAN encoder."""

from typing import List, Sequence

import numpy as np
import torch

from .cells import RANState


def _check_history(states: Sequence[RANState]) -> None:
    for state in states:
        if not isinstance(state, RANState):
            raise TypeError(
                f"Importance scores require a RAN state history, got {type(state).__name__}"
            )


def _row_scores(states: Sequence[RANState], i: int) -> List[float]:
    scores = [0.0] * (i + 1)
    with torch.no_grad():
        acc = states[i].forget_gate.detach().clone()
        for k in range(i, -1, -1):
            scores[k] = (states[k].in_gate * acc).max().item()
            if k > 0:
                acc.mul_(states[k].forget_gate)
    return scores


def step_scores(states: Sequence[RANState], i: int) -> List[float]:
    """
    Score how much each step k <= i contributed to the cell of step i.

    The running product of forget gates from step i back to step k discounts
    the input gate of step k:

        acc = forG[i]
        score[k] = max(inG[k] * acc);  acc *= forG[k]  (for k > 0)

    Args:
        states: RAN state history
        i: Index of the target step

    Returns:
        List of i + 1 scores, indexed by k
    """
    _check_history(states)
    if not 0 <= i < len(states):
        raise IndexError(f"Step {i} out of range for a history of {len(states)} states")
    return _row_scores(states, i)


def importance_scores(states: Sequence[RANState]) -> List[List[float]]:
    """Return the ragged lower-triangular table of scores, one row per step."""
    _check_history(states)
    return [_row_scores(states, i) for i in range(len(states))]


def importance_matrix(states: Sequence[RANState]) -> np.ndarray:
    """Return the importance table as an (n, n) array, NaN above the diagonal."""
    n = len(states)
    matrix = np.full((n, n), np.nan)
    for i, row in enumerate(importance_scores(states)):
        matrix[i, : i + 1] = row
    return matrix
