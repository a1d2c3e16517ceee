"""Learning rate finder."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, List

import numpy as np
from tqdm import tqdm

logger = logging.getLogger(__name__)


@dataclass
class LRFinderResult:
    """Losses recorded while increasing the learning rate exponentially.

    ``losses`` are exponentially smoothed.
    """
    lrs: List[float]
    losses: List[float]

    def steepest(self) -> float:
        """Learning rate where the loss decreases the fastest."""
        if len(self.lrs) < 3:
            return self.lrs[0]
        grads = np.gradient(np.asarray(self.losses), np.log10(np.asarray(self.lrs)))
        return float(self.lrs[int(np.argmin(grads))])

    def minimum(self) -> float:
        """A tenth of the learning rate with the lowest loss."""
        return float(self.lrs[int(np.argmin(self.losses))]) / 10

    @property
    def estimators(self) -> Dict[str, float]:
        return {'steepest': self.steepest(), 'minimum': self.minimum()}

    def __repr__(self):
        est = ', '.join(f"{k}={v:.2e}" for k, v in self.estimators.items())
        return f"LRFinderResult({len(self.lrs)} steps, {est})"


def _batches(loader):
    while True:
        empty = True
        epoch = iter(loader)
        try:
            for batch in epoch:
                empty = False
                yield batch
        finally:
            if hasattr(epoch, 'close'):
                epoch.close()
        if empty:
            raise ValueError("Cannot run the learning rate finder on empty data")


def lrfind(learner, startlr: float = 1e-7, endlr: float = 10.0, nsteps: int = 100, divergefactor: float = 4.0,
           beta: float = 0.02, verbose: bool = True) -> LRFinderResult:
    """Train for up to ``nsteps`` steps with an exponentially increasing
    learning rate, stopping once the loss exceeds ``divergefactor`` times the
    best loss seen.

    The model weights and optimizer state are restored afterwards.
    """
    if learner.data is None:
        raise ValueError("Learner has no data to search learning rates on")
    train = learner.data[0]
    batches = _batches(train)
    try:
        return _lrfind(learner, batches, startlr, endlr, nsteps, divergefactor, beta, verbose)
    finally:
        batches.close()


def _lrfind(learner, batches, startlr, endlr, nsteps, divergefactor, beta, verbose) -> LRFinderResult:
    first = next(batches)
    if not learner.model.built:
        learner.model(first[0], training=False)
    saved = {k: np.array(v, copy=True) for k, v in learner.model.state_dict().items()}
    saved_lr = learner.optimizer.lr
    learner.optimizer.reset()

    lrs, losses = [], []
    smoothed, best = 0.0, np.inf
    factors = np.geomspace(startlr, endlr, nsteps)
    pbar = tqdm(total=nsteps, desc="Finding learning rate", disable=not verbose)
    try:
        for step, lr in enumerate(factors):
            xs, ys = first if step == 0 else next(batches)
            learner.optimizer.lr = float(lr)
            loss = learner.trainstep(xs, ys)
            smoothed = beta * loss + (1 - beta) * smoothed
            value = smoothed / (1 - (1 - beta) ** (step + 1))
            lrs.append(float(lr))
            losses.append(float(value))
            pbar.update(1)
            best = min(best, value)
            if not np.isfinite(value) or value > divergefactor * best:
                logger.debug("Loss diverged at lr=%g", lr)
                break
    finally:
        pbar.close()
        learner.model.load_state_dict(saved)
        learner.optimizer.lr = saved_lr
        learner.optimizer.reset()
    return LRFinderResult(lrs, losses)
