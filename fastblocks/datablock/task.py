"""Learning tasks built from blocks and encodings.

A task bundles the blocks of a sample with the encodings that turn a
sample into model inputs and targets. Everything else (models, losses,
data loaders, visualization) is derived from those two pieces.
"""
from __future__ import annotations
import dataclasses
from typing import Any, Optional, Sequence, Tuple

import numpy as np

from ..context import Context, Training, Validation
from ..data import DataLoader, collate, getobs, numobs, splitobs
from .block import Block, mockblock
from .encoding import Encoding, decode, decodedblockfilled, encode, encodedblockfilled
from . import models


@dataclasses.dataclass(frozen=True)
class TaskBlocks:
    """The blocks of a task at every stage of the pipeline.

    ``sample`` and ``x`` always exist; the remaining fields are ``None`` for
    unsupervised tasks. ``ypred`` describes model outputs and ``pred`` their
    decoded form.
    """
    sample: Any
    x: Any
    input: Optional[Block] = None
    target: Optional[Block] = None
    y: Optional[Block] = None
    ypred: Optional[Block] = None
    pred: Optional[Block] = None


class AbstractBlockTask:
    blocks: TaskBlocks
    encodings: Tuple[Encoding, ...]


class BlockTask(AbstractBlockTask):
    """A task with a single (possibly tuple) sample block and no targets."""

    def __init__(self, blocks, encodings: Sequence[Encoding]):
        self.encodings = tuple(encodings)
        self.blocks = TaskBlocks(sample=blocks, x=encodedblockfilled(self.encodings, blocks))

    def __repr__(self):
        return f"BlockTask({self.blocks.sample!r}, {len(self.encodings)} encodings)"


class SupervisedTask(AbstractBlockTask):
    """A task whose samples are ``(input, target)`` pairs.

    Args:
        blocks: ``(inputblock, targetblock)``
        encodings: Encodings applied to both blocks in order
        ypred_block: Block of model outputs; defaults to the encoded target block
    """

    def __init__(self, blocks: Tuple[Block, Block], encodings: Sequence[Encoding],
                 ypred_block: Optional[Block] = None):
        if len(blocks) != 2:
            raise ValueError(f"SupervisedTask needs (input, target) blocks, got {len(blocks)}")
        self.encodings = tuple(encodings)
        inputblock, targetblock = blocks
        x = encodedblockfilled(self.encodings, inputblock)
        y = encodedblockfilled(self.encodings, targetblock)
        ypred = y if ypred_block is None else ypred_block
        self.blocks = TaskBlocks(
            sample=(inputblock, targetblock), x=x, input=inputblock, target=targetblock,
            y=y, ypred=ypred, pred=decodedblockfilled(self.encodings, ypred),
        )

    def __repr__(self):
        return (f"SupervisedTask({self.blocks.input.blockname} -> {self.blocks.target.blockname}, "
                f"{len(self.encodings)} encodings)")


def getblocks(task: AbstractBlockTask) -> TaskBlocks:
    return task.blocks


def getencodings(task: AbstractBlockTask) -> Tuple[Encoding, ...]:
    return task.encodings


def _issupervised(task) -> bool:
    return task.blocks.target is not None


# Encoding and decoding

def encodesample(task: AbstractBlockTask, context: Context, sample):
    return encode(task.encodings, context, task.blocks.sample, sample)


def encodeinput(task: AbstractBlockTask, context: Context, input):
    block = task.blocks.input if _issupervised(task) else task.blocks.sample
    return encode(task.encodings, context, block, input)


def encodetarget(task: AbstractBlockTask, context: Context, target):
    return encode(task.encodings, context, task.blocks.target, target)


def decodex(task: AbstractBlockTask, context: Context, x):
    return decode(task.encodings, context, task.blocks.x, x)


def decodey(task: AbstractBlockTask, context: Context, y):
    return decode(task.encodings, context, task.blocks.y, y)


def decodeypred(task: AbstractBlockTask, context: Context, ypred):
    return decode(task.encodings, context, task.blocks.ypred, ypred)


# Mocking

def mocksample(task: AbstractBlockTask):
    return mockblock(task.blocks.sample)


def mockinput(task: AbstractBlockTask):
    return mockblock(task.blocks.input if _issupervised(task) else task.blocks.sample)


def mockmodel(task: AbstractBlockTask):
    """A fake model returning random outputs of the right block for every input."""
    def model(xs):
        n = numobs(xs)
        return np.stack([np.asarray(mockblock(task.blocks.ypred)) for _ in range(n)])
    return model


# Training interface

def taskmodel(task: AbstractBlockTask, backbone=None):
    """Model for ``task``: maps batches of ``x`` to batches of ``ypred``.

    Without a ``backbone`` the default backbone of the input block is used,
    if one is registered; otherwise the model builder picks its own.
    """
    if backbone is None and models.hasblockbackbone(task.blocks.input):
        backbone = models.blockbackbone(task.blocks.input)
    return models.blockmodel(task.blocks.x, task.blocks.ypred, backbone)


def tasklossfn(task: AbstractBlockTask):
    return models.blocklossfn(task.blocks.ypred, task.blocks.y)


class TaskDataset:
    """Container encoding every observation of ``data`` on access."""

    def __init__(self, data, task: AbstractBlockTask, context: Context):
        self.data = data
        self.task = task
        self.context = context

    def __len__(self):
        return numobs(self.data)

    def __getitem__(self, idx):
        return encodesample(self.task, self.context, getobs(self.data, idx))

    def __repr__(self):
        return f"TaskDataset({len(self)} observations, context={self.context!r})"


def taskdataset(data, task: AbstractBlockTask, context: Context = Training) -> TaskDataset:
    return TaskDataset(data, task, context)


def taskdataloaders(data, task: AbstractBlockTask, batchsize: int = 16, pctgval: float = 0.2,
                    shuffle: bool = True, validbsfactor: int = 2, rng: Optional[np.random.Generator] = None,
                    **kwargs) -> Tuple[DataLoader, DataLoader]:
    """Split ``data`` and wrap both parts in data loaders of encoded batches.

    Args:
        data: Container of samples
        task: Task used to encode the samples
        batchsize: Training batch size; validation batches are ``validbsfactor`` times larger
        pctgval: Fraction of the observations held out for validation
        shuffle: Shuffle before splitting and every training epoch
        **kwargs: Passed on to both `DataLoader`s

    Returns:
        ``(train_loader, valid_loader)``
    """
    traindata, validdata = splitobs(data, at=1 - pctgval, shuffle=shuffle, rng=rng)
    return (
        DataLoader(taskdataset(traindata, task, Training), batchsize, shuffle=shuffle, **kwargs),
        DataLoader(taskdataset(validdata, task, Validation), batchsize * validbsfactor, shuffle=False, **kwargs),
    )


def makebatch(task: AbstractBlockTask, data, idxs=None, context: Context = Training):
    """Encode the samples at ``idxs`` (default: the first 8) and collate them."""
    if idxs is None:
        idxs = range(min(8, numobs(data)))
    return collate([encodesample(task, context, getobs(data, i)) for i in idxs])
