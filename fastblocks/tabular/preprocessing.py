"""Encoding table rows into category indices and normalized numbers."""
from __future__ import annotations
import logging
from typing import Dict, Optional

import numpy as np
import pandas as pd

from ..data import getobs, numobs
from ..datablock.encoding import Encoding
from .blocks import EncodedTableRow, TableRow, ismissing

logger = logging.getLogger(__name__)


def asdataframe(data) -> pd.DataFrame:
    """Table holding the observations of ``data`` (a container of rows)."""
    if isinstance(data, pd.DataFrame):
        return data
    table = getattr(data, 'table', None)
    if isinstance(table, pd.DataFrame):
        return table
    return pd.DataFrame([dict(getobs(data, i)) for i in range(numobs(data))])


class TabularPreprocessing(Encoding):
    """Categorify, fill missing values and normalize the columns of a `TableRow`.

    Categorical values become ``1 + index`` in ``categorydict[col]``, with 0
    for missing or unknown values. Missing continuous values are replaced by
    the column median, then every continuous column is standardized.

    Usually created from data with ``setup(TabularPreprocessing, block, data)``.
    """

    def __init__(self, categorydict: Dict[str, tuple], medians: Dict[str, float],
                 means: Dict[str, float], stds: Dict[str, float], dtype=np.float32):
        self.categorydict = {k: tuple(v) for k, v in categorydict.items()}
        self.medians = dict(medians)
        self.means = dict(means)
        self.stds = dict(stds)
        self.dtype = dtype
        self._lookup = {col: {c: i + 1 for i, c in enumerate(cats)} for col, cats in self.categorydict.items()}

    @classmethod
    def setup(cls, block: TableRow, data, **kwargs) -> 'TabularPreprocessing':
        """Compute categories and column statistics from ``data``.

        Categories already listed in ``block.categorydict`` are kept.
        """
        df = asdataframe(data)
        missing = [c for c in block.catcols + block.contcols if c not in df.columns]
        if missing:
            raise ValueError(f"Columns {missing} not found in data")
        categorydict = {}
        for col in block.catcols:
            if col in block.categorydict:
                categorydict[col] = block.categorydict[col]
            else:
                categorydict[col] = tuple(sorted(df[col].dropna().unique().tolist(), key=str))
        medians, means, stds = {}, {}, {}
        for col in block.contcols:
            values = pd.to_numeric(df[col], errors='coerce')
            median = float(values.median()) if values.notna().any() else 0.0
            filled = values.fillna(median)
            medians[col] = median
            means[col] = float(filled.mean())
            std = float(filled.std(ddof=0))
            stds[col] = std if std > 0 else 1.0
        logger.debug("Set up TabularPreprocessing for %d categorical and %d continuous columns",
                     len(block.catcols), len(block.contcols))
        return cls(categorydict, medians, means, stds, **kwargs)

    def encodedblock(self, block):
        if isinstance(block, TableRow):
            return EncodedTableRow(block.catcols, block.contcols, self._categories(block))
        return None

    def decodedblock(self, block):
        if isinstance(block, EncodedTableRow):
            return TableRow(block.catcols, block.contcols, block.categorydict)
        return None

    def _categories(self, block):
        cats = {}
        for col in block.catcols:
            if col not in self.categorydict:
                raise ValueError(f"No categories known for column {col!r}")
            cats[col] = self.categorydict[col]
        return cats

    def encode(self, context, block, obs, state=None):
        cats = np.array([0 if ismissing(obs[col]) else self._lookup[col].get(obs[col], 0)
                         for col in block.catcols], dtype=np.int64)
        conts = np.empty(len(block.contcols), dtype=self.dtype)
        for i, col in enumerate(block.contcols):
            value = obs[col]
            value = self.medians[col] if ismissing(value) else float(value)
            conts[i] = (value - self.means[col]) / self.stds[col]
        return cats, conts

    def decode(self, context, block, obs, state=None):
        cats, conts = obs
        row = {}
        for col, idx in zip(block.catcols, np.asarray(cats).tolist()):
            row[col] = None if idx == 0 else self.categorydict[col][idx - 1]
        for col, value in zip(block.contcols, np.asarray(conts).tolist()):
            row[col] = value * self.stds[col] + self.means[col]
        return row

    def __repr__(self):
        return f"TabularPreprocessing({len(self.categorydict)} categorical, {len(self.means)} continuous)"
