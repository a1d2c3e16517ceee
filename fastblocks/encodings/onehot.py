"""One-hot encoding of categorical blocks."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..blocks.label import Label, LabelMulti
from ..datablock.block import Block, mockrng
from ..datablock.encoding import Encoding
from ..datablock.models import register_blocklossfn
from ..nn.losses import LogitBinaryCrossEntropy, LogitCrossEntropy


@dataclass(frozen=True)
class OneHotTensor(Block):
    """Class scores over ``classes`` for each position of an ``N``-dimensional grid.

    ``N == 0`` is a single vector of length ``len(classes)``.
    """
    N: int
    classes: Tuple

    def __post_init__(self):
        object.__setattr__(self, 'classes', tuple(self.classes))

    def checkblock(self, obs) -> bool:
        obs = np.asarray(obs)
        return obs.ndim == self.N + 1 and obs.shape[-1] == len(self.classes) and np.issubdtype(obs.dtype, np.number)

    def mockblock(self):
        shape = (16,) * self.N + (len(self.classes),)
        return mockrng().random(shape).astype(np.float32)

    def showtext(self, obs) -> str:
        obs = np.asarray(obs)
        if self.N > 0:
            return f"{self.blockname} {obs.shape}"
        return '\n'.join(f"{c}: {v:.3f}" for c, v in zip(self.classes, obs))

    def showplot(self, ax, obs):
        obs = np.asarray(obs)
        if self.N == 2:
            ax.imshow(obs.argmax(axis=-1), cmap='tab20', interpolation='nearest')
            ax.axis('off')
            return
        ax.barh([str(c) for c in self.classes], obs)

    @property
    def blockname(self) -> str:
        return f"OneHotTensor{{{self.N}}}({len(self.classes)} classes)"


@dataclass(frozen=True)
class OneHotTensorMulti(OneHotTensor):
    """Independent per-class scores (multi-label)."""

    @property
    def blockname(self) -> str:
        return f"OneHotTensorMulti{{{self.N}}}({len(self.classes)} classes)"


def _sigmoid(x):
    return 1 / (1 + np.exp(-np.clip(x, -500, 500)))


class OneHot(Encoding):
    """One-hot encodes `Label`, `LabelMulti` and spatial label grids.

    Single-label outputs decode to the class with the highest score;
    multi-label outputs decode to every class whose sigmoid score reaches
    ``threshold``.
    """
    # block types holding an N-dimensional grid of class values (e.g. masks)
    _grid_blocks: Tuple[type, ...] = ()

    def __init__(self, dtype=np.float32, threshold: float = 0.5):
        self.dtype = dtype
        self.threshold = threshold

    @classmethod
    def register_grid_block(cls, blocktype: type):
        """Let `OneHot` encode ``blocktype``, which needs ``N`` and ``classes`` fields."""
        cls._grid_blocks = cls._grid_blocks + (blocktype,)
        return blocktype

    def encodedblock(self, block):
        if isinstance(block, Label):
            return OneHotTensor(0, block.classes)
        if isinstance(block, LabelMulti):
            return OneHotTensorMulti(0, block.classes)
        if isinstance(block, self._grid_blocks):
            return OneHotTensor(block.N, block.classes)
        return None

    def decodedblock(self, block):
        if isinstance(block, OneHotTensorMulti):
            return LabelMulti(block.classes) if block.N == 0 else None
        if isinstance(block, OneHotTensor):
            if block.N == 0:
                return Label(block.classes)
            if self._grid_blocks:
                return self._grid_blocks[0](block.N, block.classes)
        return None

    def encode(self, context, block, obs, state=None):
        classes = block.classes
        if isinstance(block, Label):
            try:
                idx = classes.index(obs)
            except ValueError:
                raise ValueError(f"category {obs!r} could not be found in classes {list(classes)}") from None
            y = np.zeros(len(classes), dtype=self.dtype)
            y[idx] = 1
            return y
        if isinstance(block, LabelMulti):
            y = np.zeros(len(classes), dtype=self.dtype)
            for o in obs:
                if o not in classes:
                    raise ValueError(f"category {o!r} could not be found in classes {list(classes)}")
                y[classes.index(o)] = 1
            return y
        # grid of class values
        obs = np.asarray(obs)
        lookup = {c: i for i, c in enumerate(classes)}
        values, inverse = np.unique(obs, return_inverse=True)
        missing = [v for v in values.tolist() if v not in lookup]
        if missing:
            raise ValueError(f"categories {missing} could not be found in classes {list(classes)}")
        idxs = np.array([lookup[v] for v in values.tolist()])[inverse.reshape(-1)].reshape(obs.shape)
        return np.eye(len(classes), dtype=self.dtype)[idxs]

    def decode(self, context, block, obs, state=None):
        obs = np.asarray(obs)
        if isinstance(block, OneHotTensorMulti):
            return [c for c, p in zip(block.classes, _sigmoid(obs)) if p >= self.threshold]
        if block.N == 0:
            return block.classes[int(np.argmax(obs))]
        return np.asarray(block.classes)[obs.argmax(axis=-1)]

    def __repr__(self):
        return "OneHot()"


@register_blocklossfn(OneHotTensor, OneHotTensor)
def _onehot_loss(outblock, yblock):
    return LogitCrossEntropy()


@register_blocklossfn(OneHotTensorMulti, OneHotTensorMulti)
def _onehotmulti_loss(outblock, yblock):
    return LogitBinaryCrossEntropy()
