"""Evaluation metrics for BIOES sequence labeling."""

from typing import List, Dict, Any, Sequence, Tuple
from collections import defaultdict
from seqeval.metrics import accuracy_score, classification_report, f1_score, precision_score, recall_score
from seqeval.scheme import IOBES

from ..core.decoder import filter_non_entities, merge_entities
from ..core.schema import TokenLabel


def evaluate_bioes(
    true_tags: Sequence[List[str]],
    pred_tags: Sequence[List[str]],
) -> Dict[str, Any]:
    """
    Evaluate BIOES tag predictions against ground truth.

    Entity scores use seqeval's strict IOBES mode: an entity only counts when
    its whole B...E (or S) run matches.

    Args:
        true_tags: Ground truth tag sequences
        pred_tags: Predicted tag sequences

    Returns:
        Dictionary with evaluation metrics
    """
    if len(true_tags) != len(pred_tags):
        raise ValueError("Number of true and predicted sequences must match")

    for true_seq, pred_seq in zip(true_tags, pred_tags):
        if len(true_seq) != len(pred_seq):
            raise ValueError("Tag sequences must have the same length")

    true_labels = [list(seq) for seq in true_tags]
    pred_labels = [list(seq) for seq in pred_tags]
    strict = {"mode": "strict", "scheme": IOBES}

    metrics = {
        "accuracy": accuracy_score(true_labels, pred_labels),
        "f1": f1_score(true_labels, pred_labels, **strict),
        "precision": precision_score(true_labels, pred_labels, **strict),
        "recall": recall_score(true_labels, pred_labels, **strict),
    }

    report = classification_report(true_labels, pred_labels, output_dict=True, **strict)
    metrics["classification_report"] = report

    return metrics


def compute_span_metrics(
    true_sequences: Sequence[Sequence[TokenLabel]],
    pred_sequences: Sequence[Sequence[TokenLabel]],
) -> Dict[str, Any]:
    """
    Compute exact-match metrics over entity spans.

    Each sequence holds BIOES-labeled tokens and is merged and filtered
    before comparison. A predicted span is correct when its label and both
    character offsets match a true span.

    Args:
        true_sequences: Ground truth BIOES token labels, one list per sequence
        pred_sequences: Predicted BIOES token labels, one list per sequence

    Returns:
        Dictionary with span-level metrics
    """
    if len(true_sequences) != len(pred_sequences):
        raise ValueError("Number of true and predicted sequences must match")

    true_spans = []
    pred_spans = []
    for seq_idx, (true_seq, pred_seq) in enumerate(zip(true_sequences, pred_sequences)):
        true_spans.extend(_span_keys(seq_idx, true_seq))
        pred_spans.extend(_span_keys(seq_idx, pred_seq))

    true_set = set(true_spans)
    pred_set = set(pred_spans)

    tp = len(true_set & pred_set)
    fp = len(pred_set - true_set)
    fn = len(true_set - pred_set)
    precision, recall, f1 = _prf(tp, fp, fn)

    return {
        "span_precision": precision,
        "span_recall": recall,
        "span_f1": f1,
        "true_positives": tp,
        "false_positives": fp,
        "false_negatives": fn,
        "per_entity_type": _compute_per_entity_type_metrics(true_set, pred_set),
    }


def _span_keys(seq_idx: int, tokens: Sequence[TokenLabel]) -> List[Tuple[int, str, int, int]]:
    """(sequence index, label, start, end) for every entity in a sequence."""
    spans = filter_non_entities(merge_entities(tokens))
    return [(seq_idx, span.label, span.start, span.end) for span in spans]


def _prf(tp: int, fp: int, fn: int) -> Tuple[float, float, float]:
    precision = tp / (tp + fp) if (tp + fp) > 0 else 0.0
    recall = tp / (tp + fn) if (tp + fn) > 0 else 0.0
    f1 = 2 * precision * recall / (precision + recall) if (precision + recall) > 0 else 0.0
    return precision, recall, f1


def _compute_per_entity_type_metrics(
    true_set: set,
    pred_set: set,
) -> Dict[str, Dict[str, float]]:
    """Compute metrics per entity type."""
    true_by_type = defaultdict(set)
    pred_by_type = defaultdict(set)

    for span in true_set:
        true_by_type[span[1]].add(span)

    for span in pred_set:
        pred_by_type[span[1]].add(span)

    all_types = set(true_by_type.keys()) | set(pred_by_type.keys())

    metrics = {}
    for entity_type in all_types:
        true_spans = true_by_type[entity_type]
        pred_spans = pred_by_type[entity_type]

        tp = len(true_spans & pred_spans)
        fp = len(pred_spans - true_spans)
        fn = len(true_spans - pred_spans)
        precision, recall, f1 = _prf(tp, fp, fn)

        metrics[entity_type] = {
            "precision": precision,
            "recall": recall,
            "f1": f1,
            "support": len(true_spans),
        }

    return metrics
