"""Showing samples, batches and model outputs of a task.

Every function takes an optional ``backend``; without one the backend
from `default_showbackend` is used. Encoded data is decoded with the
`Validation` context before it is shown.
"""
from __future__ import annotations
from typing import Optional, Sequence

import numpy as np

from ..context import Validation
from ..data import uncollate
from ..datablock.encoding import decode, decodedblockfilled
from ..datablock.task import AbstractBlockTask, decodeypred
from ..datablock.predict import predictbatch
from ..training.learner import getbatch
from .backends import ShowBackend, default_showbackend


def _backend(backend: Optional[ShowBackend]) -> ShowBackend:
    return default_showbackend() if backend is None else backend


def showblock(block, obs, backend: Optional[ShowBackend] = None, title: Optional[str] = None):
    return _backend(backend).showblock(block, obs, title=title)


def showblocks(blocks, obss: Sequence, backend: Optional[ShowBackend] = None, names=None, title=None):
    return _backend(backend).showblocks(blocks, list(obss), names=names, title=title)


# Samples

def showsample(task: AbstractBlockTask, sample, backend=None):
    return showsamples(task, [sample], backend=backend)


def showsamples(task: AbstractBlockTask, samples: Sequence, backend=None):
    return showblocks(task.blocks.sample, samples, backend=backend)


def _decodesamples(task, encsamples):
    blocks = task.blocks.x if task.blocks.y is None else (task.blocks.x, task.blocks.y)
    decoded_blocks = decodedblockfilled(task.encodings, blocks)
    samples = [decode(task.encodings, Validation, blocks, s) for s in encsamples]
    return decoded_blocks, samples


def showencodedsample(task: AbstractBlockTask, encsample, backend=None):
    return showencodedsamples(task, [encsample], backend=backend)


def showencodedsamples(task: AbstractBlockTask, encsamples: Sequence, backend=None):
    """Decode encoded samples ``(x, y)`` and show them."""
    blocks, samples = _decodesamples(task, encsamples)
    return showblocks(blocks, samples, backend=backend)


def showbatch(task: AbstractBlockTask, batch, backend=None):
    """Show every sample of a collated batch of encoded samples."""
    return showencodedsamples(task, uncollate(batch), backend=backend)


# Model outputs

def showoutput(task: AbstractBlockTask, encsample, ypred, backend=None):
    return showoutputs(task, [encsample], [ypred], backend=backend)


def showoutputs(task: AbstractBlockTask, samples, ypreds=None, n: int = 4, backend=None):
    """Show inputs, targets and decoded predictions side by side.

    ``samples`` is either a sequence of encoded samples ``(x, y)`` together
    with the model outputs ``ypreds``, or a `Learner`. For a learner, its
    model is run on (up to ``n`` samples of) a validation batch, falling
    back to a training batch when there is no validation data.
    """
    if ypreds is None:
        samples, ypreds = _learneroutputs(task, samples, n)
    if len(samples) != len(ypreds):
        raise ValueError(f"Got {len(samples)} samples but {len(ypreds)} outputs")
    (inblock, tblock), decoded = _decodesamples(task, samples)
    preds = [decodeypred(task, Validation, ypred) for ypred in ypreds]
    rows = [(x, y, p) for (x, y), p in zip(decoded, preds)]
    blocks = (inblock, tblock, task.blocks.pred)
    return showblocks(blocks, rows, backend=backend, names=['input', 'target', 'prediction'])


def showoutputbatch(task: AbstractBlockTask, batch, ypreds, backend=None):
    """Show a collated batch ``(xs, ys)`` with a batch of model outputs."""
    return showoutputs(task, uncollate(batch), uncollate(ypreds), backend=backend)


def _learneroutputs(task, learner, n):
    xs, ys = getbatch(learner, n=n, context=Validation)
    ypreds = learner.model(xs, training=False)
    return uncollate((xs, ys)), uncollate(ypreds)


# Predictions on unencoded inputs

def showprediction(task: AbstractBlockTask, model, input, backend=None):
    return showpredictions(task, model, [input], backend=backend)


def showpredictions(task: AbstractBlockTask, model, inputs: Sequence, backend=None):
    """Show ``inputs`` next to the model's decoded predictions."""
    preds = predictbatch(task, model, inputs)
    inblock = task.blocks.sample if task.blocks.input is None else task.blocks.input
    blocks = (inblock, task.blocks.pred)
    return showblocks(blocks, list(zip(inputs, preds)), backend=backend, names=['input', 'prediction'])


def plotlrfind(result, ax=None):
    """Plot the losses of an `LRFinderResult` over a log-scaled learning rate
    axis and mark its estimators."""
    import matplotlib.pyplot as plt

    if ax is None:
        _, ax = plt.subplots(figsize=(6, 4))
    ax.plot(result.lrs, result.losses)
    ax.set_xscale('log')
    ax.set_xlabel('Learning rate')
    ax.set_ylabel('Loss')
    for (name, lr), color in zip(result.estimators.items(), ('tab:red', 'tab:green')):
        idx = int(np.argmin(np.abs(np.asarray(result.lrs) - lr)))
        ax.scatter([lr], [result.losses[idx]], color=color, label=f"{name}: {lr:.1e}", zorder=3)
    ax.legend()
    return ax
