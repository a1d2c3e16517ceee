"""Observation containers.

A data container is anything with ``len`` and integer ``__getitem__``. A tuple
of containers of equal length is treated as a zipped container, so
``getobs((images, labels), i) == (images[i], labels[i])``.
"""
from __future__ import annotations
import numpy as np
from typing import Any, Callable, Dict, Hashable, Optional, Sequence, Tuple, Union


def numobs(data) -> int:
    if isinstance(data, tuple):
        if not data:
            raise ValueError("Cannot take the number of observations of an empty tuple")
        n = numobs(data[0])
        for d in data[1:]:
            if numobs(d) != n:
                raise ValueError(f"Zipped containers have different lengths: {[numobs(x) for x in data]}")
        return n
    return len(data)


def getobs(data, idx):
    if isinstance(data, tuple):
        return tuple(getobs(d, idx) for d in data)
    if isinstance(idx, (list, np.ndarray, range)):
        return [getobs(data, int(i)) for i in idx]
    if hasattr(data, 'iloc'):
        return data.iloc[int(idx)]
    return data[int(idx)]


class MappedData:
    """Lazily applies ``f`` to every observation of ``data``."""

    def __init__(self, f: Callable, data):
        self.f = f
        self.data = data

    def __len__(self):
        return numobs(self.data)

    def __getitem__(self, idx):
        return self.f(getobs(self.data, idx))

    def __repr__(self):
        name = getattr(self.f, '__name__', repr(self.f))
        return f"mapobs({name}, {type(self.data).__name__} with {len(self)} observations)"


class ObsView:
    """A subset of ``data`` given by ``indices``; views of views collapse."""

    def __init__(self, data, indices: Sequence[int]):
        if isinstance(data, ObsView):
            indices = [data.indices[i] for i in indices]
            data = data.data
        self.data = data
        self.indices = np.asarray(indices, dtype=np.int64)

    def __len__(self):
        return len(self.indices)

    def __getitem__(self, idx):
        return getobs(self.data, self.indices[int(idx)])

    def __repr__(self):
        return f"ObsView({type(self.data).__name__}, {len(self)} observations)"


def mapobs(f: Union[Callable, Tuple[Callable, ...], Dict[str, Callable]], data):
    """Map ``f`` over ``data``. A tuple (or dict) of functions yields tuples
    (or dicts) of results, one per function."""
    if isinstance(f, tuple):
        fs = f
        return MappedData(lambda obs: tuple(fi(obs) for fi in fs), data)
    if isinstance(f, dict):
        fd = f
        return MappedData(lambda obs: {k: fi(obs) for k, fi in fd.items()}, data)
    return MappedData(f, data)


def datasubset(data, indices: Sequence[int]) -> ObsView:
    return ObsView(data, indices)


def filterobs(predicate: Callable[[Any], bool], data) -> ObsView:
    return ObsView(data, [i for i in range(numobs(data)) if predicate(getobs(data, i))])


def groupobs(groupfn: Callable[[Any], Hashable], data) -> Dict[Hashable, ObsView]:
    groups: Dict[Hashable, list] = {}
    for i in range(numobs(data)):
        groups.setdefault(groupfn(getobs(data, i)), []).append(i)
    return {k: ObsView(data, idxs) for k, idxs in groups.items()}


def shuffleobs(data, rng: Optional[np.random.Generator] = None) -> ObsView:
    rng = rng or np.random.default_rng()
    return ObsView(data, rng.permutation(numobs(data)))


def splitobs(data, at: float = 0.8, shuffle: bool = True, rng: Optional[np.random.Generator] = None) \
        -> Tuple[ObsView, ObsView]:
    """Split into two views holding ``at`` and ``1 - at`` of the observations."""
    if not 0 < at < 1:
        raise ValueError(f"`at` must be in (0, 1), got {at}")
    n = numobs(data)
    idx = (rng or np.random.default_rng()).permutation(n) if shuffle else np.arange(n)
    cut = int(round(at * n))
    return ObsView(data, idx[:cut]), ObsView(data, idx[cut:])
