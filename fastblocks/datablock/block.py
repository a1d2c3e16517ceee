"""Blocks describe what kind of data an observation is.

A block is a small value object: two blocks are interchangeable when they
compare equal. Blocks know how to validate (`checkblock`) and fake
(`mockblock`) observations and how to render them for the interpretation
backends.
"""
from __future__ import annotations
import dataclasses
from typing import Any, Optional

import numpy as np

_rng = np.random.default_rng()


def set_mock_seed(seed: Optional[int]):
    """Reseed the generator used by every `mockblock` implementation."""
    global _rng
    _rng = np.random.default_rng(seed)


def mockrng() -> np.random.Generator:
    return _rng


class Block:
    """Base class of all blocks."""

    def checkblock(self, obs) -> bool:
        raise NotImplementedError(f"`checkblock` is not implemented for {type(self).__name__}")

    def mockblock(self):
        raise NotImplementedError(f"`mockblock` is not implemented for {type(self).__name__}")

    def showtext(self, obs) -> str:
        """Plain-text rendering used by the text show backend."""
        return repr(obs)

    def showplot(self, ax, obs):
        """Draw ``obs`` onto a matplotlib axis."""
        ax.text(0.5, 0.5, self.showtext(obs), ha='center', va='center', wrap=True)
        ax.axis('off')

    @property
    def blockname(self) -> str:
        return type(self).__name__


class WrapperBlock(Block):
    """A block wrapping another block (field ``block``).

    Unless a subclass says otherwise, everything is delegated to the wrapped
    block, and encodings that do not know the wrapper are applied to the
    wrapped block with the result re-wrapped.
    """
    block: Block

    def wrapped(self) -> Block:
        return self.block

    def setwrapped(self, inner: Block) -> 'WrapperBlock':
        return dataclasses.replace(self, block=inner)

    def checkblock(self, obs) -> bool:
        return checkblock(self.block, obs)

    def mockblock(self):
        return mockblock(self.block)

    def showtext(self, obs) -> str:
        return self.block.showtext(obs)

    def showplot(self, ax, obs):
        return self.block.showplot(ax, obs)

    def encode_wrapped(self, fn, obs):
        """Apply an encode/decode function of the wrapped block to ``obs``."""
        return fn(obs)

    @property
    def blockname(self) -> str:
        return f"{type(self).__name__}({self.block.blockname})"


def wrapped(block: Block) -> Block:
    return block.wrapped() if isinstance(block, WrapperBlock) else block


def checkblock(block, obs) -> bool:
    """Whether ``obs`` is a valid observation of ``block``.

    Tuples of blocks check tuples of observations elementwise.
    """
    if isinstance(block, tuple):
        if not isinstance(obs, (tuple, list)) or len(obs) != len(block):
            return False
        return all(checkblock(b, o) for b, o in zip(block, obs))
    return bool(block.checkblock(obs))


def mockblock(block) -> Any:
    """Generate a random valid observation of ``block``."""
    if isinstance(block, tuple):
        return tuple(mockblock(b) for b in block)
    return block.mockblock()


def blockname(block) -> str:
    if isinstance(block, tuple):
        return '(' + ', '.join(blockname(b) for b in block) + ')'
    return block.blockname
