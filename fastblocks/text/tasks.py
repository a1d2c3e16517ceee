"""Learning tasks on text."""
from __future__ import annotations
from typing import Tuple

from ..blocks.label import Label
from ..data import mapobs
from ..datablock.encoding import setup
from ..datablock.registry import TASK_REGISTRY
from ..datablock.task import SupervisedTask
from ..encodings.onehot import OneHot
from .blocks import TextRow
from .preprocessing import TextPreprocessing


@TASK_REGISTRY.register((TextRow, Label), description="Classify texts")
def TextClassificationSingle(blocks: Tuple[TextRow, Label], data=None, maxlen: int = 256, minfreq: int = 2,
                             maxvocab: int = 60000) -> SupervisedTask:
    """Predict a class from the text columns of a row.

    The vocabulary is built from the texts in ``data``.
    """
    if data is None:
        raise ValueError("TextClassificationSingle needs `data` to build a vocabulary from")
    texts = data[0] if isinstance(data, tuple) else mapobs(lambda sample: sample[0], data)
    tfm = setup(TextPreprocessing, blocks[0], texts, minfreq=minfreq, maxvocab=maxvocab, maxlen=maxlen)
    return SupervisedTask(blocks, (tfm, OneHot()))
