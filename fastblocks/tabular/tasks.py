"""Learning tasks on tabular data."""
from __future__ import annotations
from typing import Tuple

from ..blocks.continuous import Continuous
from ..blocks.label import Label
from ..data import mapobs
from ..datablock.encoding import setup
from ..datablock.registry import TASK_REGISTRY
from ..datablock.task import SupervisedTask
from ..encodings.onehot import OneHot
from .blocks import TableRow
from .preprocessing import TabularPreprocessing


def _rows(data):
    if data is None:
        raise ValueError("Tabular tasks need `data` to compute column statistics from")
    return data[0] if isinstance(data, tuple) else mapobs(lambda sample: sample[0], data)


def _tabular_encodings(block: TableRow, data, **kwargs):
    tfm = setup(TabularPreprocessing, block, _rows(data), **kwargs)
    # the input block carries the categories the model is built for
    block = TableRow(block.catcols, block.contcols, tfm.categorydict)
    return block, tfm


@TASK_REGISTRY.register((TableRow, Label), description="Classify table rows")
def TabularClassificationSingle(blocks: Tuple[TableRow, Label], data=None, **kwargs) -> SupervisedTask:
    """Predict a class from the columns of a table row.

    ``data`` (rows and targets) is used to compute the categories and
    normalization statistics of `TabularPreprocessing`.
    """
    rowblock, tfm = _tabular_encodings(blocks[0], data, **kwargs)
    return SupervisedTask((rowblock, blocks[1]), (tfm, OneHot()))


@TASK_REGISTRY.register((TableRow, Continuous), description="Regress continuous targets from table rows")
def TabularRegression(blocks: Tuple[TableRow, Continuous], data=None, **kwargs) -> SupervisedTask:
    """Predict a vector of numbers from the columns of a table row."""
    rowblock, tfm = _tabular_encodings(blocks[0], data, **kwargs)
    return SupervisedTask((rowblock, blocks[1]), (tfm,))
