"""Decoding of BIOES tag sequences into entity spans."""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple, Union

from .schema import TokenLabel

logger = logging.getLogger(__name__)

# (text, start, end, tag)
RawTokenLabel = Tuple[str, int, int, str]


@dataclass
class _EntityBuffer:
    """In-progress entity between a B tag and its closing E tag."""
    text: str = ""
    label: str = ""
    start: int = 0
    end: int = 0

    def reset(self, text: str, label: str, start: int) -> None:
        self.text = text
        self.label = label
        self.start = start
        self.end = 0

    def append(self, text: str) -> None:
        self.text += " " + text

    def to_token_label(self) -> TokenLabel:
        return TokenLabel(text=self.text, start=self.start, end=self.end, label=self.label)


def _as_token_label(token: Union[TokenLabel, RawTokenLabel]) -> TokenLabel:
    if isinstance(token, TokenLabel):
        return token
    text, start, end, label = token
    return TokenLabel(text=text, start=start, end=end, label=label)


def merge_entities(tokens: Iterable[Union[TokenLabel, RawTokenLabel]]) -> List[TokenLabel]:
    """
    Merge B-I-E runs of a BIOES-tagged sequence into single entity spans.

    O tokens pass through unchanged, S tokens lose their prefix. A B tag opens
    a new entity, I tags extend it and the E tag closes and emits it, with the
    start offset of the first token and the end offset of the last one.

    The sequence is not validated: an I or E tag without a preceding B works on
    whatever the entity buffer holds (empty, or the previous entity's text), and
    a tag with an unknown prefix is dropped. Both cases are logged.

    Args:
        tokens: TokenLabel objects or (text, start, end, tag) tuples in order

    Returns:
        List of TokenLabel with merged entities in place of their B...E runs
    """
    merged = []
    buf = _EntityBuffer()
    in_entity = False

    for token in map(_as_token_label, tokens):
        prefix = token.label[:1]
        if prefix == "O":
            merged.append(token)
        elif prefix == "S":
            merged.append(token.model_copy(update={"label": token.label[2:]}))
        elif prefix == "B":
            buf.reset(token.text, token.label[2:], token.start)
            in_entity = True
        elif prefix == "I":
            if not in_entity:
                logger.warning(f"Tag {token.label!r} on {token.text!r} has no open entity")
            buf.append(token.text)
        elif prefix == "E":
            if not in_entity:
                logger.warning(f"Tag {token.label!r} on {token.text!r} has no open entity")
            buf.append(token.text)
            buf.end = token.end
            merged.append(buf.to_token_label())
            in_entity = False
        else:
            logger.warning(f"Dropping token {token.text!r} with unrecognized tag {token.label!r}")

    return merged


def filter_non_entities(tokens: Iterable[TokenLabel]) -> List[TokenLabel]:
    """Drop every token whose label is exactly 'O'."""
    return [token for token in tokens if token.label != "O"]


def decode(
    tokens: Sequence[Union[TokenLabel, RawTokenLabel]],
    merge: bool = True,
    filter_not_entities: bool = False,
) -> List[TokenLabel]:
    """
    Decode a tagged token sequence.

    Args:
        tokens: TokenLabel objects or (text, start, end, tag) tuples
        merge: Merge B-I-E runs into entity spans
        filter_not_entities: Drop tokens labeled 'O'

    Returns:
        Decoded list of TokenLabel
    """
    result = [_as_token_label(token) for token in tokens]
    if merge:
        result = merge_entities(result)
    if filter_not_entities:
        result = filter_non_entities(result)
    logger.debug(f"Decoded {len(tokens)} tokens into {len(result)} labels")
    return result
