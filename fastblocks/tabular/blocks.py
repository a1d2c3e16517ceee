"""Blocks for rows of tabular data."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Tuple

import numpy as np
import pandas as pd

from ..datablock.block import Block, mockrng


def ismissing(value) -> bool:
    return value is None or (pd.api.types.is_scalar(value) and bool(pd.isna(value)))


@dataclass(frozen=True)
class TableRow(Block):
    """A row of a table with categorical and continuous columns.

    Observations are mappings (``dict`` or `pandas.Series`) from column
    name to value. Values may be missing (``None``/``NaN``).

    Args:
        catcols: Names of the categorical columns
        contcols: Names of the continuous columns
        categorydict: Possible values of every categorical column
    """
    catcols: Tuple[str, ...]
    contcols: Tuple[str, ...]
    categorydict: Dict[str, tuple] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, 'catcols', tuple(self.catcols))
        object.__setattr__(self, 'contcols', tuple(self.contcols))
        object.__setattr__(self, 'categorydict', {k: tuple(v) for k, v in self.categorydict.items()})

    def checkblock(self, obs) -> bool:
        try:
            for col in self.catcols:
                value = obs[col]
                if not ismissing(value) and col in self.categorydict and value not in self.categorydict[col]:
                    return False
            for col in self.contcols:
                value = obs[col]
                if not ismissing(value) and not isinstance(value, (int, float, np.number)):
                    return False
        except (KeyError, TypeError):
            return False
        return True

    def mockblock(self):
        rng = mockrng()
        row = {}
        for col in self.catcols:
            cats = self.categorydict.get(col) or ('a', 'b')
            row[col] = cats[int(rng.integers(len(cats)))]
        for col in self.contcols:
            row[col] = float(rng.standard_normal())
        return row

    def showtext(self, obs) -> str:
        return '\n'.join(f"{col}: {obs[col]}" for col in self.catcols + self.contcols)

    def showplot(self, ax, obs):
        ax.text(0.02, 0.98, self.showtext(obs), ha='left', va='top', family='monospace', fontsize=8)
        ax.axis('off')

    @property
    def blockname(self) -> str:
        return f"TableRow({len(self.catcols)} categorical, {len(self.contcols)} continuous)"


@dataclass(frozen=True)
class EncodedTableRow(Block):
    """A `TableRow` as ``(category indices, normalized continuous values)``.

    Index 0 of every categorical column stands for a missing or unknown
    value.
    """
    catcols: Tuple[str, ...]
    contcols: Tuple[str, ...]
    categorydict: Dict[str, tuple] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, 'catcols', tuple(self.catcols))
        object.__setattr__(self, 'contcols', tuple(self.contcols))
        object.__setattr__(self, 'categorydict', {k: tuple(v) for k, v in self.categorydict.items()})

    @property
    def cardinalities(self) -> Tuple[int, ...]:
        return tuple(len(self.categorydict[col]) + 1 for col in self.catcols)

    def checkblock(self, obs) -> bool:
        if not isinstance(obs, tuple) or len(obs) != 2:
            return False
        cats, conts = np.asarray(obs[0]), np.asarray(obs[1])
        if cats.shape != (len(self.catcols),) or conts.shape != (len(self.contcols),):
            return False
        if not np.issubdtype(cats.dtype, np.integer) and cats.size:
            return False
        return bool(np.all((cats >= 0) & (cats < np.asarray(self.cardinalities, dtype=np.int64))))

    def mockblock(self):
        rng = mockrng()
        cats = np.array([rng.integers(n) for n in self.cardinalities], dtype=np.int64)
        return cats, rng.standard_normal(len(self.contcols)).astype(np.float32)

    def showtext(self, obs) -> str:
        cats, conts = obs
        return f"categorical: {list(np.asarray(cats))}\ncontinuous: {np.round(np.asarray(conts), 3).tolist()}"
