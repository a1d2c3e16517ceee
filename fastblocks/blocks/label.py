"""Categorical labels."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from ..datablock.block import Block, mockrng


def _astuple(classes) -> tuple:
    classes = tuple(classes)
    if not classes:
        raise ValueError("`classes` must not be empty")
    return classes


@dataclass(frozen=True)
class Label(Block):
    """A single class out of ``classes``."""
    classes: Tuple

    def __post_init__(self):
        object.__setattr__(self, 'classes', _astuple(self.classes))

    def checkblock(self, obs) -> bool:
        return obs in self.classes

    def mockblock(self):
        return self.classes[mockrng().integers(len(self.classes))]

    def showtext(self, obs) -> str:
        return str(obs)

    def showplot(self, ax, obs):
        ax.text(0.5, 0.5, str(obs), ha='center', va='center', fontsize=14)
        ax.axis('off')

    @property
    def blockname(self) -> str:
        return f"Label({len(self.classes)} classes)"


@dataclass(frozen=True)
class LabelMulti(Block):
    """Any number of distinct classes out of ``classes``."""
    classes: Tuple

    def __post_init__(self):
        object.__setattr__(self, 'classes', _astuple(self.classes))

    def checkblock(self, obs) -> bool:
        if isinstance(obs, (str, bytes)) or not hasattr(obs, '__iter__'):
            return False
        obs = list(obs)
        return len(set(obs)) == len(obs) and all(o in self.classes for o in obs)

    def mockblock(self):
        mask = mockrng().random(len(self.classes)) < 0.5
        return [c for c, m in zip(self.classes, mask) if m]

    def showtext(self, obs) -> str:
        return ', '.join(str(o) for o in obs)

    def showplot(self, ax, obs):
        ax.text(0.5, 0.5, self.showtext(obs), ha='center', va='center', wrap=True)
        ax.axis('off')

    @property
    def blockname(self) -> str:
        return f"LabelMulti({len(self.classes)} classes)"
