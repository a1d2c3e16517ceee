"""Loss functions.

Every loss works on logits (no final softmax/sigmoid layer in the model) and
on arbitrary leading dimensions, so the same class serves classification
``(N, K)`` and segmentation ``(N, H, W, K)`` outputs.
"""
from __future__ import annotations
import numpy as np


class Loss:
    name = 'loss'

    def forward(self, y_pred, y_true) -> float:
        raise NotImplementedError

    def backward(self):
        raise NotImplementedError

    def __call__(self, y_pred, y_true) -> float:
        return self.forward(y_pred, y_true)

    def __repr__(self):
        return f"{self.__class__.__name__}()"


class LogitCrossEntropy(Loss):
    """Softmax cross-entropy on logits with one-hot (or integer) targets."""
    name = 'logitcrossentropy'

    def forward(self, y_pred, y_true):
        y_pred = np.asarray(y_pred)
        y_true = np.asarray(y_true)
        k = y_pred.shape[-1]
        logits = y_pred.reshape(-1, k)
        shifted = logits - logits.max(axis=1, keepdims=True)
        probs = np.exp(shifted)
        probs /= probs.sum(axis=1, keepdims=True)
        self.probs = probs
        self.shape = y_pred.shape
        if y_true.ndim == y_pred.ndim - 1:
            # integer labels
            labels = y_true.reshape(-1).astype(np.int64)
            self.y_true = np.zeros_like(probs)
            self.y_true[np.arange(len(labels)), labels] = 1
        else:
            self.y_true = y_true.reshape(-1, k)
        log_probs = shifted - np.log(np.exp(shifted).sum(axis=1, keepdims=True))
        return float(-np.mean(np.sum(self.y_true * log_probs, axis=1)))

    def backward(self):
        grad = (self.probs - self.y_true) / self.probs.shape[0]
        return grad.reshape(self.shape).astype(np.float32)


class LogitBinaryCrossEntropy(Loss):
    """Sigmoid binary cross-entropy on logits, used for multi-label targets."""
    name = 'logitbinarycrossentropy'

    def forward(self, y_pred, y_true):
        x = np.asarray(y_pred)
        y = np.asarray(y_true, dtype=x.dtype)
        self.x = x
        self.y = y
        losses = np.maximum(x, 0) - x * y + np.log1p(np.exp(-np.abs(x)))
        return float(np.mean(losses))

    def backward(self):
        s = 1 / (1 + np.exp(-np.clip(self.x, -500, 500)))
        return ((s - self.y) / self.y.size).astype(np.float32)


class MSE(Loss):
    name = 'mse'

    def forward(self, y_pred, y_true):
        self.y_pred = np.asarray(y_pred)
        self.y_true = np.asarray(y_true, dtype=self.y_pred.dtype).reshape(self.y_pred.shape)
        return float(np.mean((self.y_pred - self.y_true)**2))

    def backward(self):
        return (2*(self.y_pred - self.y_true)/self.y_true.size).astype(np.float32)

