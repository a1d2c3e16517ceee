"""Parameter groups and per-group learning rates."""
from __future__ import annotations
from typing import Callable, Dict, Iterable, Sequence, Union

from .callbacks import Callback


class IndexGrouper:
    """Group parameters by the index of the top-level layer they belong to.

    ``IndexGrouper([[0], [1]])`` puts the parameters of a ``Chain([backbone,
    head])`` into group 0 (backbone) and group 1 (head).
    """

    def __init__(self, groups: Sequence[Union[int, Iterable[int]]]):
        self.groups = [[g] if isinstance(g, int) else list(g) for g in groups]

    def __call__(self, name: str) -> int:
        idx = int(name.split('.', 1)[0])
        for group, idxs in enumerate(self.groups):
            if idx in idxs:
                return group
        raise KeyError(f"Parameter {name!r} is not in any group of {self.groups}")

    def __repr__(self):
        return f"IndexGrouper({self.groups})"


class ParamGroups:
    """Assignment of every parameter of ``model`` to a group via ``grouper``.

    Parameters not yet created when the groups are built (layers are built
    lazily) are assigned on first lookup.
    """

    def __init__(self, grouper: Callable[[str], int], model=None):
        self.grouper = grouper
        self.groups: Dict[str, int] = {}
        if model is not None:
            for name, _, _ in model.named_parameters():
                self.groups[name] = grouper(name)

    def getgroup(self, name: str) -> int:
        if name not in self.groups:
            self.groups[name] = self.grouper(name)
        return self.groups[name]

    def __repr__(self):
        return f"ParamGroups({len(set(self.groups.values()))} groups, {len(self.groups)} parameters)"


class DiscriminativeLRs(Callback):
    """Scale the learning rate of each parameter group by ``factors[group]``.

    A factor of 0 freezes a group. Groups without a factor train at the
    full learning rate.
    """
    order = -20

    def __init__(self, paramgroups: ParamGroups, factors: Dict[int, float]):
        self.paramgroups = paramgroups
        self.factors = dict(factors)

    def scale(self, name: str) -> float:
        return self.factors.get(self.paramgroups.getgroup(name), 1.0)

    def before_fit(self, learner):
        learner.paramscale = self.scale

    def after_fit(self, learner):
        learner.paramscale = None

    def __repr__(self):
        return f"DiscriminativeLRs({self.factors})"
