"""Encodings transform observations of one block into observations of another.

An encoding declares which blocks it applies to through `encodedblock`
(``None`` means "not applicable", in which case observations pass through
unchanged). Sequences of encodings are folded left to right when encoding
and right to left when decoding.
"""
from __future__ import annotations
from typing import Any, Optional, Sequence, Union

from ..context import Context
from .block import Block, WrapperBlock


class Encoding:
    """Base class of all encodings."""

    def encodedblock(self, block: Block) -> Optional[Block]:
        return None

    def decodedblock(self, block: Block) -> Optional[Block]:
        return None

    def encode(self, context: Context, block: Block, obs, state=None):
        raise NotImplementedError

    def decode(self, context: Context, block: Block, obs, state=None):
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}()"


class StatefulEncoding(Encoding):
    """An encoding that draws random state once per sample.

    The state returned by `encodestate` is shared by every block of the
    sample, e.g. an image and its mask are cropped at the same position.
    """

    def encodestate(self, context: Context, blocks, obss):
        return None

    def decodestate(self, context: Context, blocks, obss):
        return None


Encodings = Union[Encoding, Sequence[Encoding]]


def _is_sequence(encoding) -> bool:
    return isinstance(encoding, (list, tuple))


def encodedblock(encoding: Encoding, block: Block) -> Optional[Block]:
    """Block after applying ``encoding``, or ``None`` if it does not apply."""
    out = encoding.encodedblock(block)
    if out is None and isinstance(block, WrapperBlock):
        inner = encodedblock(encoding, block.wrapped())
        return None if inner is None else block.setwrapped(inner)
    return out


def decodedblock(encoding: Encoding, block: Block) -> Optional[Block]:
    out = encoding.decodedblock(block)
    if out is None and isinstance(block, WrapperBlock):
        inner = decodedblock(encoding, block.wrapped())
        return None if inner is None else block.setwrapped(inner)
    return out


def encodedblockfilled(encoding: Encodings, block):
    """Like `encodedblock` but returns ``block`` where an encoding does not
    apply; works on tuples of blocks and sequences of encodings."""
    if _is_sequence(encoding):
        for enc in encoding:
            block = encodedblockfilled(enc, block)
        return block
    if isinstance(block, tuple):
        return tuple(encodedblockfilled(encoding, b) for b in block)
    out = encodedblock(encoding, block)
    return block if out is None else out


def decodedblockfilled(encoding: Encodings, block):
    if _is_sequence(encoding):
        for enc in reversed(encoding):
            block = decodedblockfilled(enc, block)
        return block
    if isinstance(block, tuple):
        return tuple(decodedblockfilled(encoding, b) for b in block)
    out = decodedblock(encoding, block)
    return block if out is None else out


def encode(encoding: Encodings, context: Context, block, obs, state=None):
    """Encode ``obs`` of ``block`` with one encoding or a sequence of them."""
    if _is_sequence(encoding):
        for enc in encoding:
            obs = encode(enc, context, block, obs)
            block = encodedblockfilled(enc, block)
        return obs
    if state is None and isinstance(encoding, StatefulEncoding):
        state = encoding.encodestate(context, block, obs)
    if isinstance(block, tuple):
        return tuple(encode(encoding, context, b, o, state) for b, o in zip(block, obs))
    if encoding.encodedblock(block) is not None:
        return encoding.encode(context, block, obs, state=state)
    if isinstance(block, WrapperBlock) and encodedblock(encoding, block.wrapped()) is not None:
        inner = block.wrapped()
        return block.encode_wrapped(lambda o: encode(encoding, context, inner, o, state), obs)
    return obs


def decode(encoding: Encodings, context: Context, block, obs, state=None):
    """Inverse of `encode`; ``block`` is the *encoded* block."""
    if _is_sequence(encoding):
        for enc in reversed(encoding):
            obs = decode(enc, context, block, obs)
            block = decodedblockfilled(enc, block)
        return obs
    if state is None and isinstance(encoding, StatefulEncoding):
        state = encoding.decodestate(context, block, obs)
    if isinstance(block, tuple):
        return tuple(decode(encoding, context, b, o, state) for b, o in zip(block, obs))
    if encoding.decodedblock(block) is not None:
        return encoding.decode(context, block, obs, state=state)
    if isinstance(block, WrapperBlock) and decodedblock(encoding, block.wrapped()) is not None:
        inner = block.wrapped()
        return block.encode_wrapped(lambda o: decode(encoding, context, inner, o, state), obs)
    return obs


def setup(encodingcls, block, data, **kwargs) -> Any:
    """Create a data-dependent encoding, e.g. ``setup(TabularPreprocessing, block, data)``.

    Encoding classes that support this implement a ``setup`` classmethod.
    """
    fn = getattr(encodingcls, 'setup', None)
    if fn is None:
        raise TypeError(f"{encodingcls.__name__} cannot be set up from data")
    return fn(block, data, **kwargs)
