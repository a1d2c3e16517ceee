"""The training loop and its entry points."""
from __future__ import annotations
import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np

from ..context import Context, Training, Validation
from ..datablock.task import AbstractBlockTask, taskdataloaders, tasklossfn, taskmodel
from ..encodings.onehot import OneHotTensor, OneHotTensorMulti
from ..nn.optim import Optimizer, get_optimizer
from .callbacks import (
    Callback, CancelFitException, Metrics, ProgressBar, Recorder, Scheduler, onecycle,
)
from .metrics import accuracy, accuracy_thresh
from .paramgroups import DiscriminativeLRs, IndexGrouper, ParamGroups

logger = logging.getLogger(__name__)


class Learner:
    """Model, loss function, data and optimizer, trained by `fit`.

    Args:
        model: Layer mapping batches of inputs to outputs
        lossfn: Loss with ``forward(ypred, y)`` and ``backward()``
        data: ``(train_loader, valid_loader)``; the validation loader may be ``None``
        optimizer: `Optimizer` instance or name (``"adam"``, ``"sgd"``)
        callbacks: Additional `Callback` objects
        metrics: Functions ``(ypred, y) -> float`` evaluated every epoch
        usedefaultcallbacks: Add `Recorder` and `ProgressBar`
        lr: Initial learning rate
        weight_decay: L2 penalty added to the gradients by the optimizer
        clip_norm: Maximum gradient norm per parameter (default: no clipping)

    Attributes:
        history: Per-epoch values recorded by the `Recorder`
    """

    def __init__(self, model, lossfn, data=None, optimizer: Union[str, Optimizer, None] = 'adam',
                 callbacks: Iterable[Callback] = (), metrics: Sequence[Callable] = (),
                 usedefaultcallbacks: bool = True, lr: Optional[float] = None, task: AbstractBlockTask = None,
                 weight_decay: float = 0.0, clip_norm: Optional[float] = None):
        self.model = model
        self.lossfn = lossfn
        self.data = data
        self.optimizer = get_optimizer(optimizer) if lr is None else get_optimizer(optimizer, lr=lr)
        if weight_decay or clip_norm is not None:
            self.optimizer.configure(weight_decay=weight_decay, clip_norm=clip_norm)
        self.task = task
        self.callbacks: List[Callback] = [Metrics(*metrics)]
        if usedefaultcallbacks:
            self.callbacks += [Recorder(), ProgressBar()]
        self.callbacks += list(callbacks)
        self.paramscale: Optional[Callable[[str], float]] = None
        self.training = False
        self.epoch = 0
        self.nepochs = 0
        self.nbatches = 0
        self.iteration = 0
        self.totalsteps = 0
        self.epochvalues: Dict[str, float] = {}

    # Callbacks

    def addcallback(self, callback: Callback):
        self.callbacks.append(callback)

    def removecallback(self, callback: Callback):
        self.callbacks.remove(callback)

    def getcallback(self, cls):
        for cb in self.callbacks:
            if isinstance(cb, cls):
                return cb
        return None

    def _event(self, name: str):
        for cb in sorted(self.callbacks, key=lambda cb: cb.order):
            getattr(cb, name)(self)

    @property
    def recorder(self) -> Optional[Recorder]:
        return self.getcallback(Recorder)

    @property
    def history(self) -> Dict[str, List[float]]:
        recorder = self.recorder
        return recorder.history if recorder is not None else {}

    # Training

    def _stepitems(self):
        for name, p, g in self.model.named_parameters():
            if self.paramscale is None:
                yield p, g
            else:
                yield p, g, self.paramscale(name)

    def trainstep(self, xs, ys) -> float:
        """One optimization step on a batch; returns the loss."""
        self.xs, self.ys = xs, ys
        self.ypred = self.model(xs, training=True)
        self.loss = self.lossfn(self.ypred, ys)
        self.model.backward(self.lossfn.backward())
        self.optimizer.step(self._stepitems())
        return self.loss

    def validstep(self, xs, ys) -> float:
        self.xs, self.ys = xs, ys
        self.ypred = self.model(xs, training=False)
        self.loss = self.lossfn(self.ypred, ys)
        return self.loss

    def _trainepoch(self, loader):
        self.training = True
        for xs, ys in loader:
            self._event('before_batch')
            self.trainstep(xs, ys)
            self._event('after_batch')
            self.iteration += 1

    def _validepoch(self, loader):
        self.training = False
        self._event('before_validate')
        for xs, ys in loader:
            self._event('before_batch')
            self.validstep(xs, ys)
            self._event('after_batch')
        self._event('after_validate')

    def fit(self, nepochs: int, lr: Optional[float] = None) -> Dict[str, List[float]]:
        """Train for ``nepochs`` epochs. Returns the recorded history."""
        if self.data is None:
            raise ValueError("Learner has no data to fit on")
        if lr is not None:
            self.optimizer.lr = lr
        train, valid = self.data
        self.nepochs = nepochs
        self.nbatches = len(train)
        self.totalsteps = nepochs * self.nbatches
        self.iteration = 0
        try:
            self._event('before_fit')
            for epoch in range(nepochs):
                self.epoch = epoch
                self._event('before_epoch')
                self._trainepoch(train)
                if valid is not None:
                    self._validepoch(valid)
                self._event('after_epoch')
        except CancelFitException:
            logger.info("Training stopped after epoch %d", self.epoch + 1)
        finally:
            self.training = False
            self._event('after_fit')
        return self.history

    def __repr__(self):
        return f"Learner({type(self.model).__name__}, {self.lossfn!r}, {self.optimizer!r})"


def fit(learner: Learner, nepochs: int, lr: Optional[float] = None):
    return learner.fit(nepochs, lr=lr)


def fitonecycle(learner: Learner, nepochs: int, maxlr: float = 0.01, pct_start: float = 0.25,
                div: float = 25.0, divfinal: float = 1e5):
    """Train with a one-cycle learning rate schedule peaking at ``maxlr``."""
    scheduler = Scheduler(onecycle(maxlr, pct_start=pct_start, div=div, divfinal=divfinal))
    learner.addcallback(scheduler)
    try:
        return learner.fit(nepochs)
    finally:
        learner.removecallback(scheduler)


def finetune(learner: Learner, nepochs: int, base_lr: float = 0.002, freezeepochs: int = 1,
             grouper: Optional[Callable[[str], int]] = None, backbone_factor: float = 0.1, div: float = 5.0,
             **kwargs):
    """Fine-tune a ``Chain([backbone, head])`` model.

    First trains only the head for ``freezeepochs`` epochs, then the whole
    model for ``nepochs`` epochs with the backbone learning at
    ``backbone_factor`` times the learning rate of the head.
    """
    grouper = IndexGrouper([[0], [1]]) if grouper is None else grouper
    paramgroups = ParamGroups(grouper, learner.model)
    history = None
    if freezeepochs:
        frozen = DiscriminativeLRs(paramgroups, {0: 0.0})
        learner.addcallback(frozen)
        try:
            history = fitonecycle(learner, freezeepochs, base_lr, pct_start=0.99, **kwargs)
        finally:
            learner.removecallback(frozen)
    if nepochs:
        discriminative = DiscriminativeLRs(paramgroups, {0: backbone_factor})
        learner.addcallback(discriminative)
        try:
            history = fitonecycle(learner, nepochs, base_lr / 2, div=div, **kwargs)
        finally:
            learner.removecallback(discriminative)
    return history


def defaultmetrics(task: AbstractBlockTask) -> List[Callable]:
    ypred = task.blocks.ypred
    if isinstance(ypred, OneHotTensorMulti):
        return [accuracy_thresh]
    if isinstance(ypred, OneHotTensor):
        return [accuracy]
    return []


def tasklearner(task: AbstractBlockTask, data, backbone=None, model=None, batchsize: int = 16,
                pctgval: float = 0.2, optimizer: Union[str, Optimizer] = 'adam', lr: Optional[float] = None,
                callbacks: Iterable[Callback] = (), metrics: Optional[Sequence[Callable]] = None,
                usedefaultcallbacks: bool = True, rng: Optional[np.random.Generator] = None,
                weight_decay: float = 0.0, clip_norm: Optional[float] = None, **dlkwargs) -> Learner:
    """Create a `Learner` for ``task`` on a container of samples.

    ``data`` is split into training and validation loaders (see
    `taskdataloaders`); the model is ``taskmodel(task, backbone)`` unless
    ``model`` is given, and the loss is ``tasklossfn(task)``.
    """
    loaders = taskdataloaders(data, task, batchsize=batchsize, pctgval=pctgval, rng=rng, **dlkwargs)
    if model is None:
        model = taskmodel(task, backbone)
    if metrics is None:
        metrics = defaultmetrics(task)
    return Learner(model, tasklossfn(task), data=loaders, optimizer=optimizer, callbacks=callbacks,
                   metrics=metrics, usedefaultcallbacks=usedefaultcallbacks, lr=lr, task=task,
                   weight_decay=weight_decay, clip_norm=clip_norm)


def _firstbatch(loader):
    batches = iter(loader)
    try:
        return next(batches, None)
    finally:
        if hasattr(batches, 'close'):
            batches.close()


def _take(batch, n: int):
    if isinstance(batch, tuple):
        return tuple(_take(b, n) for b in batch)
    if isinstance(batch, dict):
        return {k: _take(v, n) for k, v in batch.items()}
    return batch[:n]


def getbatch(learner: Learner, n: Optional[int] = None, context: Context = Validation):
    """First batch ``(xs, ys)`` of the learner's data, cut to ``n`` samples.

    In the ``Training`` context the batch comes from the training loader;
    otherwise from the validation loader, or the training loader when there
    is no validation data.

    Raises:
        ValueError: If the learner has no data or the loaders are empty
    """
    if learner.data is None:
        raise ValueError("Learner has no data")
    train, valid = learner.data
    batch = None
    if context is not Training and valid is not None:
        batch = _firstbatch(valid)
    if batch is None:
        batch = _firstbatch(train)
    if batch is None:
        raise ValueError("Learner data is empty")
    return batch if n is None else _take(batch, n)
