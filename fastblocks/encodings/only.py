"""Restricting an encoding to some blocks or contexts."""
from __future__ import annotations
from typing import Callable, Iterable, Optional, Union

from ..context import Context
from ..blocks.wrappers import Named
from ..datablock.encoding import (
    Encoding, StatefulEncoding, decode, decodedblock, encode, encodedblock,
)


class Only(StatefulEncoding):
    """Apply ``encoding`` only where ``blocks`` and ``contexts`` allow it.

    Args:
        encoding: The wrapped encoding
        blocks: A predicate on blocks, or a name matched against `Named` blocks
        contexts: Contexts in which to apply the encoding (default: all)

    Restricting by context is meant for encodings that keep the block type,
    such as augmentations; otherwise the block would depend on the context.
    """

    def __init__(self, encoding: Encoding, blocks: Union[Callable, str, None] = None,
                 contexts: Optional[Iterable[Context]] = None):
        self.encoding = encoding
        if isinstance(blocks, str):
            name = blocks
            blocks = lambda block: isinstance(block, Named) and block.name == name  # noqa: E731
        self.predicate = blocks
        self.contexts = None if contexts is None else frozenset(contexts)

    def _applies(self, block) -> bool:
        return self.predicate is None or bool(self.predicate(block))

    def encodedblock(self, block):
        return encodedblock(self.encoding, block) if self._applies(block) else None

    def decodedblock(self, block):
        return decodedblock(self.encoding, block) if self._applies(block) else None

    def encodestate(self, context, blocks, obss):
        if isinstance(self.encoding, StatefulEncoding):
            return self.encoding.encodestate(context, blocks, obss)
        return None

    def encode(self, context, block, obs, state=None):
        if self.contexts is not None and context not in self.contexts:
            return obs
        return encode(self.encoding, context, block, obs, state)

    def decode(self, context, block, obs, state=None):
        if self.contexts is not None and context not in self.contexts:
            return obs
        return decode(self.encoding, context, block, obs, state)

    def __repr__(self):
        return f"Only({self.encoding!r})"
