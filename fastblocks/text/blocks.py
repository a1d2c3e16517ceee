"""Blocks for text."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..datablock.block import Block, mockrng

_MOCKWORDS = ('the', 'a', 'movie', 'was', 'good', 'bad', 'really', 'not', 'plot', 'actors', '.', ',')


@dataclass(frozen=True)
class TextRow(Block):
    """A row of one or more text columns: a mapping of column name to string."""
    textcols: Tuple[str, ...] = ('text',)

    def __post_init__(self):
        object.__setattr__(self, 'textcols', tuple(self.textcols))
        if not self.textcols:
            raise ValueError("`textcols` must not be empty")

    def checkblock(self, obs) -> bool:
        try:
            return all(isinstance(obs[col], str) for col in self.textcols)
        except (KeyError, TypeError, IndexError):
            return False

    def mockblock(self):
        rng = mockrng()
        return {col: ' '.join(rng.choice(_MOCKWORDS, size=int(rng.integers(5, 20))).tolist())
                for col in self.textcols}

    def showtext(self, obs) -> str:
        return '\n'.join(f"{col}: {obs[col]}" for col in self.textcols)

    def showplot(self, ax, obs):
        ax.text(0.02, 0.98, self.showtext(obs), ha='left', va='top', wrap=True, fontsize=8)
        ax.axis('off')


@dataclass(frozen=True)
class EncodedTextRow(Block):
    """Token ids of a `TextRow`, padded with 0 to ``maxlen``."""
    vocabsize: int
    maxlen: int
    textcols: Tuple[str, ...] = ('text',)

    def __post_init__(self):
        object.__setattr__(self, 'textcols', tuple(self.textcols))

    def checkblock(self, obs) -> bool:
        obs = np.asarray(obs)
        return (obs.shape == (self.maxlen,) and np.issubdtype(obs.dtype, np.integer)
                and bool(np.all((obs >= 0) & (obs < self.vocabsize))))

    def mockblock(self):
        ids = mockrng().integers(1, self.vocabsize, size=self.maxlen)
        ids[int(mockrng().integers(1, self.maxlen + 1)):] = 0
        return ids.astype(np.int64)

    def showtext(self, obs) -> str:
        obs = np.asarray(obs)
        return f"{int((obs != 0).sum())} tokens: {obs[obs != 0][:20].tolist()}"

    @property
    def blockname(self) -> str:
        return f"EncodedTextRow(vocab {self.vocabsize}, maxlen {self.maxlen})"
