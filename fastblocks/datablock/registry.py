"""Registry of learning task constructors, searchable by block types."""
from __future__ import annotations
from typing import Callable, Dict, List, Tuple, Type, Union

from .block import Block


class TaskRegistry:
    def __init__(self):
        self._entries: Dict[str, Tuple[Tuple[Type[Block], ...], Callable, str]] = {}

    def register(self, blocktypes: Tuple[Type[Block], ...], name: str = None, description: str = ''):
        """Decorator registering a task constructor taking ``(blocks, data=None, **kwargs)``."""
        def decorator(fn):
            self._entries[name or fn.__name__] = (tuple(blocktypes), fn, description or (fn.__doc__ or '').strip())
            return fn
        return decorator

    def __getitem__(self, name: str) -> Callable:
        try:
            return self._entries[name][1]
        except KeyError:
            raise KeyError(f"No learning task named {name!r}; known tasks: {sorted(self._entries)}") from None

    def __len__(self):
        return len(self._entries)

    def names(self) -> List[str]:
        return list(self._entries)

    def find(self, blocks=None) -> List[Callable]:
        """Task constructors whose block types match ``blocks``.

        ``blocks`` may hold block types or block instances; ``None`` entries
        (or ``Block``) match anything.
        """
        if blocks is None:
            return [fn for _, fn, _ in self._entries.values()]
        return [fn for types, fn, _ in self._entries.values() if matchblocktypes(blocks, types)]


def matchblocktypes(query, types) -> bool:
    if len(query) != len(types):
        return False
    for q, t in zip(query, types):
        if q is None:
            continue
        qtype = q if isinstance(q, type) else type(q)
        if not (issubclass(t, qtype) or issubclass(qtype, t)):
            return False
    return True


TASK_REGISTRY = TaskRegistry()


def findlearningtasks(blocks=None) -> List[Callable]:
    return TASK_REGISTRY.find(blocks)


def learningtasks() -> List[str]:
    return TASK_REGISTRY.names()
