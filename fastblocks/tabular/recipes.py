"""Dataset recipe for tables stored as CSV files."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from ..blocks.continuous import Continuous
from ..blocks.label import Label
from ..data import mapobs
from ..datasets.containers import TableDataset
from ..datasets.files import PathLike
from ..datasets.recipes import DatasetRecipe, register_dataset
from .blocks import TableRow

logger = logging.getLogger(__name__)


def _asvector(value):
    return np.array([value], dtype=np.float32)


@dataclass
class TableDatasetRecipe(DatasetRecipe):
    """A CSV table with one target column.

    Columns not listed in ``catcols`` or ``contcols`` are split by dtype:
    numeric columns are continuous, everything else categorical. With
    ``regression`` the target becomes a `Continuous` block, otherwise a
    `Label`.
    """
    file: str = 'data.csv'
    targetcol: Optional[str] = None
    catcols: Optional[Sequence[str]] = None
    contcols: Optional[Sequence[str]] = None
    regression: bool = False
    blocktypes = (TableRow, Label)

    def __post_init__(self):
        if self.regression:
            self.blocktypes = (TableRow, Continuous)

    def load(self, path: PathLike):
        path = Path(path)
        file = path / self.file if path.is_dir() else path
        if not file.is_file():
            raise FileNotFoundError(f"Table not found: {file}")
        df = pd.read_csv(file, skipinitialspace=True)
        if self.targetcol is None or self.targetcol not in df.columns:
            raise ValueError(f"Target column {self.targetcol!r} not found in {file.name}")
        features = df.drop(columns=[self.targetcol])
        catcols, contcols = self.catcols, self.contcols
        if catcols is None:
            catcols = [c for c in features.columns
                       if (contcols is None or c not in contcols) and not pd.api.types.is_numeric_dtype(features[c])]
        if contcols is None:
            contcols = [c for c in features.columns if c not in catcols]
        categorydict = {c: tuple(sorted(features[c].dropna().unique().tolist(), key=str)) for c in catcols}
        rowblock = TableRow(catcols, contcols, categorydict)
        targets = df[self.targetcol]
        logger.info("Loaded table %s with %d rows", file.name, len(df))
        if self.regression:
            return (TableDataset(features), mapobs(_asvector, targets.tolist())), (rowblock, Continuous(1))
        classes = tuple(sorted(targets.dropna().unique().tolist(), key=str))
        return (TableDataset(features), targets.tolist()), (rowblock, Label(classes))


register_dataset('adult_sample', TableDatasetRecipe('adult.csv', targetcol='salary'),
                 "Adult census income, predict whether salary exceeds 50k")
