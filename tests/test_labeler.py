"""Tests for the sequence labeler."""

import pytest
import torch
import torch.nn as nn

from seqlab.core.schema import TagSchema, TokenLabel
from seqlab.data.tokenizer import Token
from seqlab.models.cells import CellType
from seqlab.models.encoder import MergeMode
from seqlab.models.labeler import LabelerConfig, SequenceLabeler

INPUT_SIZE = 6
HIDDEN_SIZE = 4
LABELS = ["O", "B-LOC", "I-LOC", "E-LOC", "S-LOC"]


def make_labeler(**kwargs):
    torch.manual_seed(0)
    config = LabelerConfig(input_size=INPUT_SIZE, hidden_size=HIDDEN_SIZE, labels=LABELS, **kwargs)
    return SequenceLabeler(config)


class FixedScorer(nn.Module):
    """Scorer stub that always prefers `label_ids[t]` at step t."""

    def __init__(self, label_ids):
        super().__init__()
        self.label_ids = label_ids

    def forward(self, hidden):
        n = hidden.shape[0]
        scores = torch.zeros(n, len(LABELS))
        scores[torch.arange(n), torch.tensor(self.label_ids[:n], dtype=torch.long)] = 1.0
        return scores


def force_labels(labeler, label_ids):
    labeler.scorer = FixedScorer(label_ids)


class TestLabelerConfig:
    """Test LabelerConfig."""

    def test_defaults(self):
        config = LabelerConfig(input_size=2, hidden_size=3, labels=["O"])

        assert config.cell_type == CellType.RAN
        assert config.merge_mode == MergeMode.CONCAT
        assert config.use_layer_norm is False

    def test_from_schema(self):
        schema = TagSchema.create_standard_schema(["PER"])
        config = LabelerConfig.from_schema(schema, input_size=2, hidden_size=3, cell_type="deltarnn")

        assert config.labels == ["O", "B-PER", "I-PER", "E-PER", "S-PER"]
        assert config.cell_type == CellType.DELTA_RNN

    @pytest.mark.parametrize("kwargs", [
        {"input_size": 0, "hidden_size": 3, "labels": ["O"]},
        {"input_size": 2, "hidden_size": 3, "labels": []},
        {"input_size": 2, "hidden_size": 3, "labels": ["O", "O"]},
        {"input_size": 2, "hidden_size": 3, "labels": ["O"], "cell_type": "lstm"},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            LabelerConfig(**kwargs)


class TestSequenceLabeler:
    """Test SequenceLabeler."""

    @pytest.mark.parametrize("cell_type", ["ran", "deltarnn"])
    def test_emission_scores_shape(self, cell_type):
        labeler = make_labeler(cell_type=cell_type)
        scores = labeler(torch.randn(3, INPUT_SIZE))

        assert scores.shape == (3, len(LABELS))

    def test_layer_norm_option(self):
        labeler = make_labeler(use_layer_norm=True, merge_mode="sum")

        assert not isinstance(labeler.norm, nn.Identity)
        assert labeler(torch.randn(2, INPUT_SIZE)).shape == (2, len(LABELS))

    def test_empty_sequence(self):
        labeler = make_labeler()

        assert labeler(torch.randn(0, INPUT_SIZE)).shape == (0, len(LABELS))
        assert labeler.predict([]) == []

    def test_predict(self):
        labeler = make_labeler()
        vectors = torch.randn(4, INPUT_SIZE)

        predicted = labeler.predict(vectors)

        assert len(predicted) == 4
        assert predicted == labeler(vectors).argmax(dim=-1).tolist()

    def test_scores_are_differentiable(self):
        labeler = make_labeler()
        labeler(torch.randn(3, INPUT_SIZE)).sum().backward()

        assert labeler.encoder.forward_params.w_in.grad is not None
        assert labeler.scorer.weight.grad is not None

    def test_label_tokens(self):
        labeler = make_labeler()
        force_labels(labeler, [1, 3, 0])
        tokens = [Token("New", 0, 3), ("York", 4, 8), Token("is", 9, 11)]

        labeled = labeler.label_tokens(tokens, torch.randn(3, INPUT_SIZE))

        assert labeled == [
            TokenLabel(text="New", start=0, end=3, label="B-LOC"),
            TokenLabel(text="York", start=4, end=8, label="E-LOC"),
            TokenLabel(text="is", start=9, end=11, label="O"),
        ]

    def test_label_tokens_length_mismatch(self):
        labeler = make_labeler()

        with pytest.raises(ValueError):
            labeler.label_tokens([Token("a", 0, 1)], torch.randn(2, INPUT_SIZE))

    def test_analyze(self):
        labeler = make_labeler()
        force_labels(labeler, [1, 3, 0, 0])

        def embed(words):
            assert words == ["New", "York", "is", "big"]
            return torch.randn(len(words), INPUT_SIZE)

        result = labeler.analyze("New York is big", embed, merge=True, filter_not_entities=True)

        assert result == [TokenLabel(text="New York", start=0, end=8, label="LOC")]

    def test_analyze_without_merge(self):
        labeler = make_labeler()
        force_labels(labeler, [4, 0])

        result = labeler.analyze("Rome today", lambda words: torch.randn(len(words), INPUT_SIZE), merge=False)

        assert [t.label for t in result] == ["S-LOC", "O"]

    def test_analyze_empty_text(self):
        labeler = make_labeler()

        assert labeler.analyze("   ", lambda words: pytest.fail("embed called")) == []
