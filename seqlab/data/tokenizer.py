"""Word tokenization with character offsets."""

import re
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Token:
    """A word and its [start, end) character span in the source text."""
    text: str
    start: int
    end: int


class OffsetTokenizer:
    """Splits text into words, separating boundary punctuation, and keeps offsets."""

    def __init__(self):
        self.WORD_RE = re.compile(
            r"""
            (?:
                # Initials (J.K., U.S.)
                [A-Za-z]\.(?:[A-Za-z]\.)+
            )
            |
            (?:
                # Words with internal apostrophes or hyphens
                \w+
                (?:['-]\w+)*
            )
            |
            [^\w\s]                               # single punctuation
            """,
            re.VERBOSE,
        )

    def tokenize(self, text: str) -> List[Token]:
        """
        Tokenize text.

        Examples:
        - "New York is big." -> New(0,3) York(4,8) is(9,11) big(12,15) .(15,16)
        - "Jean-Luc's" -> Jean-Luc's(0,10)

        Args:
            text: Input text

        Returns:
            Tokens in text order
        """
        return [Token(m.group(0), m.start(), m.end()) for m in self.WORD_RE.finditer(text)]

    def split_words(self, text: str) -> List[str]:
        return [token.text for token in self.tokenize(text)]


def tokenize_with_offsets(text: str) -> List[Token]:
    """Tokenize `text` with a default OffsetTokenizer."""
    return OffsetTokenizer().tokenize(text)
