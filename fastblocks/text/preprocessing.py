"""Tokenization and numericalization of text rows."""
from __future__ import annotations
import logging
import re
from collections import Counter
from typing import List, Optional, Sequence

import numpy as np

from ..data import getobs, numobs
from ..datablock.encoding import Encoding
from .blocks import EncodedTextRow, TextRow

logger = logging.getLogger(__name__)

PAD = 'xxpad'
UNK = 'xxunk'
_TOKEN_RE = re.compile(r"\w+|[^\w\s]")
_TAG_RE = re.compile(r"<[^>]+>")


def tokenize(text: str) -> List[str]:
    """Lower-cased words and punctuation of ``text``; HTML tags are dropped."""
    return _TOKEN_RE.findall(_TAG_RE.sub(' ', text).lower())


def buildvocab(texts, minfreq: int = 2, maxvocab: int = 60000) -> List[str]:
    """Vocabulary of the tokens in ``texts`` seen at least ``minfreq`` times.

    Index 0 is the padding token and index 1 the unknown token; the rest is
    sorted by decreasing frequency, at most ``maxvocab`` entries in total.
    """
    counts = Counter()
    for text in texts:
        counts.update(tokenize(text))
    tokens = [t for t, n in counts.most_common() if n >= minfreq and t not in (PAD, UNK)]
    return [PAD, UNK] + tokens[:max(maxvocab - 2, 0)]


class TextPreprocessing(Encoding):
    """Turn a `TextRow` into a fixed-length array of token ids.

    The text columns are joined, tokenized and truncated to ``maxlen``
    tokens; shorter texts are padded with 0. Tokens outside ``vocab`` map
    to the unknown token.
    """

    def __init__(self, vocab: Sequence[str], maxlen: int = 256):
        self.vocab = list(vocab)
        if len(self.vocab) < 2 or self.vocab[0] != PAD or self.vocab[1] != UNK:
            raise ValueError(f"`vocab` must start with {PAD!r} and {UNK!r}")
        self.maxlen = int(maxlen)
        self._ids = {t: i for i, t in enumerate(self.vocab)}

    @classmethod
    def setup(cls, block: TextRow, data, minfreq: int = 2, maxvocab: int = 60000,
              maxlen: int = 256) -> 'TextPreprocessing':
        """Build the vocabulary from the text rows in ``data``."""
        texts = (_jointext(block, getobs(data, i)) for i in range(numobs(data)))
        vocab = buildvocab(texts, minfreq=minfreq, maxvocab=maxvocab)
        logger.info("Built vocabulary of %d tokens", len(vocab))
        return cls(vocab, maxlen=maxlen)

    def encodedblock(self, block):
        if isinstance(block, TextRow):
            return EncodedTextRow(len(self.vocab), self.maxlen, block.textcols)
        return None

    def decodedblock(self, block):
        if isinstance(block, EncodedTextRow):
            return TextRow(block.textcols)
        return None

    def numericalize(self, tokens: Sequence[str]) -> np.ndarray:
        ids = np.zeros(self.maxlen, dtype=np.int64)
        tokens = tokens[:self.maxlen]
        ids[:len(tokens)] = [self._ids.get(t, 1) for t in tokens]
        return ids

    def encode(self, context, block, obs, state=None):
        return self.numericalize(tokenize(_jointext(block, obs)))

    def decode(self, context, block, obs, state=None):
        text = ' '.join(self.vocab[i] for i in np.asarray(obs).tolist() if i != 0)
        row = {col: '' for col in block.textcols}
        row[block.textcols[0]] = text
        return row

    def __repr__(self):
        return f"TextPreprocessing(vocab of {len(self.vocab)}, maxlen={self.maxlen})"


def _jointext(block: TextRow, obs) -> str:
    return ' '.join(str(obs[col]) for col in block.textcols)
