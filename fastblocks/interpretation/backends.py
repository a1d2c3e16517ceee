"""Show backends render rows of (block, observation) pairs.

`ShowText` prints rich tables to a console; `ShowPlots` draws a grid of
matplotlib axes with one row per sample and one column per block.
"""
from __future__ import annotations
from typing import Optional, Sequence, Tuple

from rich.console import Console
from rich.table import Table

from .. import config
from ..datablock.block import blockname


def _astuple(blocks, obs):
    if isinstance(blocks, tuple):
        return blocks, obs
    return (blocks,), (obs,)


class ShowBackend:
    def showblock(self, block, obs, title: Optional[str] = None):
        return self.showblocks(block, [obs], title=title)

    def showblocks(self, blocks, obss: Sequence, names: Optional[Sequence[str]] = None,
                   title: Optional[str] = None):
        """Show a row for every observation in ``obss`` of (a tuple of) ``blocks``."""
        raise NotImplementedError


class ShowText(ShowBackend):
    """Print observations as rich tables.

    Args:
        console: Console to print to (default: a new `rich.console.Console`)
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def showblocks(self, blocks, obss, names=None, title=None) -> Table:
        table = Table(title=title, show_lines=True)
        columns = blocks if isinstance(blocks, tuple) else (blocks,)
        names = names or [blockname(b) for b in columns]
        for name in names:
            table.add_column(str(name))
        for obs in obss:
            bs, os_ = _astuple(blocks, obs)
            table.add_row(*[b.showtext(o) for b, o in zip(bs, os_)])
        self.console.print(table)
        return table

    def __repr__(self):
        return "ShowText()"


class ShowPlots(ShowBackend):
    """Draw observations on a grid of matplotlib axes.

    Args:
        size: Size in inches of each axis
    """

    def __init__(self, size: Tuple[float, float] = (3.0, 3.0)):
        self.size = size

    def showblocks(self, blocks, obss, names=None, title=None):
        import matplotlib.pyplot as plt

        columns = blocks if isinstance(blocks, tuple) else (blocks,)
        names = names or [blockname(b) for b in columns]
        nrows, ncols = max(len(obss), 1), len(columns)
        fig, axes = plt.subplots(nrows, ncols, figsize=(self.size[0] * ncols, self.size[1] * nrows),
                                 squeeze=False)
        for i, obs in enumerate(obss):
            bs, os_ = _astuple(blocks, obs)
            for j, (b, o) in enumerate(zip(bs, os_)):
                b.showplot(axes[i, j], o)
        for j, name in enumerate(names):
            axes[0, j].set_title(str(name), fontsize=9)
        if title:
            fig.suptitle(title)
        fig.tight_layout()
        return fig

    def __repr__(self):
        return f"ShowPlots(size={self.size})"


def default_showbackend() -> ShowBackend:
    """Backend selected by ``FASTBLOCKS_SHOW_BACKEND``."""
    if config.show_backend_name() == 'plots':
        return ShowPlots()
    return ShowText()
