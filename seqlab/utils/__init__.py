"""Utility functions for Seqlab."""

from .metrics import evaluate_bioes, compute_span_metrics

__all__ = ["evaluate_bioes", "compute_span_metrics"]
