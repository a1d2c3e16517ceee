"""Human-readable summaries of encoding pipelines."""
from __future__ import annotations
from typing import Sequence

from rich.console import Console
from rich.table import Table

from .block import blockname
from .encoding import Encoding, encodedblockfilled
from .task import AbstractBlockTask


def _render(table: Table, width: int) -> str:
    console = Console(width=width, color_system=None)
    with console.capture() as capture:
        console.print(table)
    return capture.get()


def describeencodings(encodings: Sequence[Encoding], blocks: tuple, names: Sequence[str] = None,
                      title: str = "Encoding pipeline", width: int = 120) -> str:
    """Table of every block after each encoding. Unchanged blocks show as ``·``."""
    names = list(names or [f"block {i + 1}" for i in range(len(blocks))])
    table = Table(title=title)
    table.add_column("Encoding")
    for name in names:
        table.add_column(name)
    current = list(blocks)
    table.add_row("", *[blockname(b) for b in current])
    for enc in encodings:
        new = [encodedblockfilled(enc, b) for b in current]
        table.add_row(repr(enc), *[blockname(n) if n != b else "·" for n, b in zip(new, current)])
        current = new
    return _render(table, width)


def describetask(task: AbstractBlockTask, width: int = 120) -> str:
    """Summary of ``task``: its blocks and how each encoding transforms them."""
    b = task.blocks
    if b.target is not None:
        blocks, names = (b.input, b.target), ("input", "target")
    else:
        blocks = b.sample if isinstance(b.sample, tuple) else (b.sample,)
        names = None
    out = describeencodings(task.encodings, blocks, names, title=f"{type(task).__name__} encodings", width=width)
    if b.ypred is not None:
        summary = Table(title="Model")
        summary.add_column("x")
        summary.add_column("ŷ")
        summary.add_column("decoded ŷ")
        summary.add_row(blockname(b.x), blockname(b.ypred), blockname(b.pred))
        out += _render(summary, width)
    return out
