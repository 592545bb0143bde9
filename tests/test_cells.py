"""Tests for the RAN and DeltaRNN cells."""

import pytest
import torch
import torch.nn as nn
from torch.testing import assert_close

from seqlab.models.cells import (
    CellType,
    DeltaRNNParams,
    DeltaRNNState,
    RANParams,
    RANState,
    delta_rnn_step,
    new_params,
    ran_step,
    state_class,
    step,
)

INPUT_SIZE = 4
OUTPUT_SIZE = 3


def randomize(params: nn.Module, seed: int = 0) -> nn.Module:
    """Fill every parameter (biases included) with small random values."""
    generator = torch.Generator().manual_seed(seed)
    with torch.no_grad():
        for p in params.parameters():
            p.copy_(torch.rand(p.shape, generator=generator) - 0.5)
    return params


@pytest.fixture
def ran():
    return randomize(RANParams(INPUT_SIZE, OUTPUT_SIZE))


@pytest.fixture
def delta():
    return randomize(DeltaRNNParams(INPUT_SIZE, OUTPUT_SIZE), seed=1)


@pytest.fixture
def xs():
    return torch.randn(3, INPUT_SIZE, generator=torch.Generator().manual_seed(42))


class TestParams:
    """Test parameter containers."""

    def test_ran_shapes(self):
        params = RANParams(INPUT_SIZE, OUTPUT_SIZE)

        assert params.w_in.shape == (OUTPUT_SIZE, INPUT_SIZE)
        assert params.w_in_rec.shape == (OUTPUT_SIZE, OUTPUT_SIZE)
        assert params.b_in.shape == (OUTPUT_SIZE,)
        assert params.w_cand.shape == (OUTPUT_SIZE, INPUT_SIZE)
        assert len(list(params.parameters())) == 8

    def test_delta_shapes(self):
        params = DeltaRNNParams(INPUT_SIZE, OUTPUT_SIZE)

        assert params.w.shape == (OUTPUT_SIZE, INPUT_SIZE)
        assert params.w_rec.shape == (OUTPUT_SIZE, OUTPUT_SIZE)
        for name in ("b", "b_part", "alpha", "beta1", "beta2"):
            assert getattr(params, name).shape == (OUTPUT_SIZE,)
        assert len(list(params.parameters())) == 7

    def test_zero_initialized(self):
        for params in (RANParams(2, 2), DeltaRNNParams(2, 2)):
            assert all(torch.count_nonzero(p) == 0 for p in params.parameters())

    def test_reset_parameters(self):
        params = DeltaRNNParams(INPUT_SIZE, OUTPUT_SIZE)
        params.reset_parameters()

        assert torch.count_nonzero(params.w) > 0
        assert torch.equal(params.alpha, torch.ones(OUTPUT_SIZE))
        assert torch.equal(params.b, torch.zeros(OUTPUT_SIZE))

    def test_new_params(self):
        assert isinstance(new_params("ran", 2, 3), RANParams)
        assert isinstance(new_params(CellType.DELTA_RNN, 2, 3), DeltaRNNParams)

        params = new_params("ran", 2, 3, reset=True)
        assert torch.count_nonzero(params.w_in) > 0

    def test_new_params_unknown_type(self):
        with pytest.raises(ValueError):
            new_params("lstm", 2, 3)

    def test_state_class(self):
        assert state_class("ran") is RANState
        assert state_class(CellType.DELTA_RNN) is DeltaRNNState


class TestRANStep:
    """Test the RAN step."""

    def test_first_step_has_no_forget_term(self, ran, xs):
        state = ran_step(ran, xs[0])

        assert torch.equal(state.cell, state.in_gate * state.candidate)
        assert torch.equal(state.y, torch.tanh(state.cell))

    def test_first_step_gates(self, ran, xs):
        x = xs[0]
        state = ran_step(ran, x)

        assert_close(state.in_gate, torch.sigmoid(ran.w_in @ x + ran.b_in))
        assert_close(state.forget_gate, torch.sigmoid(ran.w_for @ x + ran.b_for))
        assert_close(state.candidate, ran.w_cand @ x + ran.b_cand)

    def test_first_step_ignores_recurrent_kernels(self, ran, xs):
        before = ran_step(ran, xs[0])
        with torch.no_grad():
            ran.w_in_rec.fill_(5.0)
            ran.w_for_rec.fill_(-5.0)
        after = ran_step(ran, xs[0])

        assert torch.equal(before.y, after.y)

    def test_second_step(self, ran, xs):
        first = ran_step(ran, xs[0])
        second = ran_step(ran, xs[1], first)

        x, y_prev, c_prev = xs[1], first.y, first.cell
        in_gate = torch.sigmoid(ran.w_in @ x + ran.w_in_rec @ y_prev + ran.b_in)
        forget_gate = torch.sigmoid(ran.w_for @ x + ran.w_for_rec @ y_prev + ran.b_for)
        cell = in_gate * (ran.w_cand @ x + ran.b_cand) + forget_gate * c_prev

        assert_close(second.in_gate, in_gate)
        assert_close(second.forget_gate, forget_gate)
        assert_close(second.cell, cell)
        assert_close(second.y, torch.tanh(cell))

    def test_zero_params_give_zero_output(self, xs):
        state = ran_step(RANParams(INPUT_SIZE, OUTPUT_SIZE), xs[0])

        assert torch.equal(state.y, torch.zeros(OUTPUT_SIZE))
        assert_close(state.in_gate, torch.full((OUTPUT_SIZE,), 0.5))

    def test_gradients_flow(self, ran, xs):
        state = ran_step(ran, xs[1], ran_step(ran, xs[0]))
        state.y.sum().backward()

        assert ran.w_in.grad is not None
        assert ran.w_for_rec.grad is not None
        assert torch.count_nonzero(ran.w_cand.grad) > 0


class TestDeltaRNNStep:
    """Test the DeltaRNN step."""

    def test_first_step(self, delta, xs):
        x = xs[0]
        state = delta_rnn_step(delta, x)

        wx = delta.w @ x
        partition = torch.sigmoid(wx + delta.b_part)
        expected = torch.tanh(partition * torch.tanh(delta.beta1 * wx + delta.b))

        assert state.d2 is None
        assert_close(state.d1, delta.beta1 * wx)
        assert_close(state.partition, partition)
        assert_close(state.y, expected)

    def test_first_step_ignores_alpha_and_recurrence(self, delta, xs):
        before = delta_rnn_step(delta, xs[0])
        with torch.no_grad():
            delta.alpha.fill_(3.0)
            delta.beta2.fill_(3.0)
            delta.w_rec.fill_(3.0)
        after = delta_rnn_step(delta, xs[0])

        assert torch.equal(before.y, after.y)

    def test_second_step(self, delta, xs):
        first = delta_rnn_step(delta, xs[0])
        second = delta_rnn_step(delta, xs[1], first)

        x, y_prev = xs[1], first.y
        wx = delta.w @ x
        wy_rec = delta.w_rec @ y_prev
        d1 = delta.beta1 * wx + delta.beta2 * wy_rec
        d2 = delta.alpha * wx * wy_rec
        candidate = torch.tanh(d1 + d2 + delta.b)
        partition = torch.sigmoid(wx + delta.b_part)
        y = torch.tanh(partition * candidate + (1 - partition) * y_prev)

        assert_close(second.d1, d1)
        assert_close(second.d2, d2)
        assert_close(second.candidate, candidate)
        assert_close(second.y, y)


class TestStepDispatch:
    """Test the variant-dispatching step."""

    def test_dispatch_ran(self, ran, xs):
        state = step(ran, xs[0])

        assert isinstance(state, RANState)
        assert torch.equal(state.y, ran_step(ran, xs[0]).y)

    def test_dispatch_delta(self, delta, xs):
        first = step(delta, xs[0])
        second = step(delta, xs[1], first)

        assert isinstance(second, DeltaRNNState)
        assert torch.equal(second.y, delta_rnn_step(delta, xs[1], first).y)

    def test_mismatched_state(self, ran, delta, xs):
        delta_state = step(delta, xs[0])

        with pytest.raises(TypeError):
            step(ran, xs[1], delta_state)

    def test_unknown_params(self, xs):
        with pytest.raises(TypeError):
            step(nn.Linear(INPUT_SIZE, OUTPUT_SIZE), xs[0])
