"""Wrapper blocks: `Named` and `Many`."""
from __future__ import annotations
from dataclasses import dataclass

from ..datablock.block import Block, WrapperBlock, checkblock, mockblock, mockrng


@dataclass(frozen=True)
class Named(WrapperBlock):
    """Tags ``block`` with a name, e.g. to target it with `Only`."""
    name: str
    block: Block

    @property
    def blockname(self) -> str:
        return f"{self.name}: {self.block.blockname}"


@dataclass(frozen=True)
class Many(WrapperBlock):
    """A variable-length list of observations of ``block``."""
    block: Block

    def checkblock(self, obs) -> bool:
        return isinstance(obs, (list, tuple)) and all(checkblock(self.block, o) for o in obs)

    def mockblock(self):
        return [mockblock(self.block) for _ in range(int(mockrng().integers(1, 4)))]

    def showtext(self, obs) -> str:
        return '\n'.join(self.block.showtext(o) for o in obs)

    def showplot(self, ax, obs):
        ax.text(0.5, 0.5, self.showtext(obs), ha='center', va='center', wrap=True)
        ax.axis('off')

    def encode_wrapped(self, fn, obs):
        return [fn(o) for o in obs]
