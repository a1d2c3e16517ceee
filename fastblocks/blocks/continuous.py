"""Fixed-size vectors of real numbers."""
from __future__ import annotations
from dataclasses import dataclass

import numpy as np

from ..datablock.block import Block, mockrng
from ..datablock.models import register_blocklossfn
from ..nn.losses import MSE


@dataclass(frozen=True)
class Continuous(Block):
    size: int

    def checkblock(self, obs) -> bool:
        obs = np.asarray(obs)
        return obs.shape == (self.size,) and np.issubdtype(obs.dtype, np.number)

    def mockblock(self):
        return mockrng().standard_normal(self.size).astype(np.float32)

    def showtext(self, obs) -> str:
        return np.array2string(np.asarray(obs), precision=3, separator=', ')

    def showplot(self, ax, obs):
        obs = np.asarray(obs)
        ax.bar(np.arange(len(obs)), obs)
        ax.set_xticks(np.arange(len(obs)))


@register_blocklossfn(Continuous, Continuous)
def _continuous_loss(outblock, yblock):
    return MSE()
