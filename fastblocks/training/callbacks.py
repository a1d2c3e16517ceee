"""Callbacks hooking into the training loop of a `Learner`.

A callback implements any of the event methods below. Callbacks run in
increasing ``order``: metrics are computed before they are recorded, and
recorded before plateau callbacks look at them.
"""
from __future__ import annotations
import logging
import math
from typing import Callable, Dict, List, Optional

import numpy as np
from tqdm import tqdm

from ..data import numobs

logger = logging.getLogger(__name__)


class CancelFitException(Exception):
    """Raised by a callback to stop training early."""


class Callback:
    order = 0

    def before_fit(self, learner): pass
    def before_epoch(self, learner): pass
    def before_batch(self, learner): pass
    def after_batch(self, learner): pass
    def before_validate(self, learner): pass
    def after_validate(self, learner): pass
    def after_epoch(self, learner): pass
    def after_fit(self, learner): pass

    def __repr__(self):
        return f"{type(self).__name__}()"


def metricname(metric) -> str:
    return getattr(metric, '__name__', type(metric).__name__)


class Metrics(Callback):
    """Average the loss and ``metrics`` over every training and validation epoch.

    Metrics are functions ``(ypred, y) -> float`` computed per batch and
    weighted by batch size. Results are stored in ``learner.epochvalues``
    as ``"loss"``/``"val_loss"`` and ``name``/``"val_" + name``.
    """
    order = 0

    def __init__(self, *metrics: Callable):
        self.metrics = list(metrics)
        self._reset()

    def _reset(self):
        self.sums: Dict[str, float] = {}
        self.count = 0

    def before_epoch(self, learner):
        learner.epochvalues = {}
        self._reset()

    def before_validate(self, learner):
        self._collect(learner, '')
        self._reset()

    def after_batch(self, learner):
        n = numobs(learner.ys)
        self.count += n
        self.sums['loss'] = self.sums.get('loss', 0.0) + learner.loss * n
        for metric in self.metrics:
            name = metricname(metric)
            self.sums[name] = self.sums.get(name, 0.0) + float(metric(learner.ypred, learner.ys)) * n

    def after_validate(self, learner):
        self._collect(learner, 'val_')
        self._reset()

    def after_epoch(self, learner):
        # no validation data: training values were not collected yet
        if self.count:
            self._collect(learner, '')
            self._reset()

    def _collect(self, learner, prefix):
        if not self.count:
            return
        for name, total in self.sums.items():
            learner.epochvalues[prefix + name] = total / self.count

    def __repr__(self):
        return f"Metrics({', '.join(metricname(m) for m in self.metrics)})"


class Recorder(Callback):
    """Keep the history of epoch values and learning rates.

    ``history`` maps ``"loss"``, ``"val_loss"``, metric names and ``"lr"``
    to one value per epoch; ``steps`` holds the loss and learning rate of
    every training step.
    """
    order = 10

    def __init__(self):
        self.history: Dict[str, List[float]] = {'loss': [], 'val_loss': [], 'lr': []}
        self.steps: Dict[str, List[float]] = {'loss': [], 'lr': []}

    def after_batch(self, learner):
        if learner.training:
            self.steps['loss'].append(learner.loss)
            self.steps['lr'].append(learner.optimizer.lr)

    def after_epoch(self, learner):
        for name, value in learner.epochvalues.items():
            self.history.setdefault(name, []).append(value)
        self.history['lr'].append(learner.optimizer.lr)


class ProgressBar(Callback):
    """tqdm progress bar over the training batches of each epoch."""
    order = 20

    def __init__(self):
        self.pbar = None

    def before_epoch(self, learner):
        self.losses = []
        self.pbar = tqdm(total=learner.nbatches, desc=f"Epoch {learner.epoch + 1}/{learner.nepochs}")

    def after_batch(self, learner):
        if learner.training and self.pbar is not None:
            self.losses.append(learner.loss)
            self.pbar.update(1)
            self.pbar.set_postfix(loss=np.mean(self.losses))

    def after_epoch(self, learner):
        if self.pbar is not None:
            self.pbar.set_postfix({k: f"{v:.4f}" for k, v in learner.epochvalues.items()})
            self.pbar.close()
            self.pbar = None

    def after_fit(self, learner):
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None


class Scheduler(Callback):
    """Set the learning rate before every training step.

    ``schedule`` maps the training progress in ``[0, 1]`` to a learning rate.
    """
    order = -10

    def __init__(self, schedule: Callable[[float], float]):
        self.schedule = schedule

    def before_batch(self, learner):
        if learner.training:
            t = learner.iteration / max(learner.totalsteps - 1, 1)
            learner.optimizer.lr = float(self.schedule(min(t, 1.0)))


def onecycle(maxlr: float, pct_start: float = 0.25, div: float = 25.0, divfinal: float = 1e5) -> Callable:
    """Cosine warm-up from ``maxlr / div`` to ``maxlr``, then cosine
    annealing down to ``maxlr / divfinal``."""
    startlr, endlr = maxlr / div, maxlr / divfinal

    def _cos(a, b, t):
        return b + (a - b) * (1 + math.cos(math.pi * t)) / 2

    def schedule(t: float) -> float:
        if t < pct_start:
            return _cos(startlr, maxlr, t / pct_start)
        return _cos(maxlr, endlr, (t - pct_start) / max(1 - pct_start, 1e-8))
    return schedule


class _PlateauCallback(Callback):
    order = 30

    def __init__(self, monitor: str = 'val_loss', mode: str = 'min', patience: int = 5, min_delta: float = 0.0):
        if mode not in ('min', 'max'):
            raise ValueError(f"mode must be 'min' or 'max', got {mode!r}")
        self.monitor = monitor
        self.mode = mode
        self.patience = patience
        self.min_delta = min_delta

    def before_fit(self, learner):
        self.best = math.inf if self.mode == 'min' else -math.inf
        self.wait = 0

    def _value(self, learner) -> Optional[float]:
        values = learner.epochvalues
        if self.monitor in values:
            return values[self.monitor]
        # fall back to the training value when there is no validation data
        if self.monitor.startswith('val_'):
            return values.get(self.monitor[len('val_'):])
        return None

    def _improved(self, learner) -> bool:
        value = self._value(learner)
        if value is None:
            return True
        if self.mode == 'min':
            better = value < self.best - self.min_delta
        else:
            better = value > self.best + self.min_delta
        if better:
            self.best = value
            self.wait = 0
        else:
            self.wait += 1
        return better


class EarlyStopping(_PlateauCallback):
    """Stop training when ``monitor`` has not improved for ``patience`` epochs."""

    def __init__(self, patience: int = 10, min_delta: float = 0.0, monitor: str = 'val_loss', mode: str = 'min'):
        super().__init__(monitor, mode, patience, min_delta)

    def after_epoch(self, learner):
        if not self._improved(learner) and self.wait >= self.patience:
            logger.info("Early stopping at epoch %d. Best %s=%.4f", learner.epoch + 1, self.monitor, self.best)
            raise CancelFitException()


class ReduceLROnPlateau(_PlateauCallback):
    """Multiply the learning rate by ``factor`` when ``monitor`` plateaus."""

    def __init__(self, patience: int = 5, factor: float = 0.5, min_lr: float = 1e-6, min_delta: float = 0.0,
                 monitor: str = 'val_loss', mode: str = 'min'):
        super().__init__(monitor, mode, patience, min_delta)
        self.factor = factor
        self.min_lr = min_lr

    def after_epoch(self, learner):
        if self._improved(learner) or self.wait < self.patience:
            return
        opt = learner.optimizer
        if opt.lr > self.min_lr:
            old_lr = opt.lr
            opt.lr = max(self.min_lr, opt.lr * self.factor)
            logger.info("LR reduced from %g to %g", old_lr, opt.lr)
        self.wait = 0
