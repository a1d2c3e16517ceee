"""Runtime configuration read from environment variables.

FASTBLOCKS_DATADIR       root folder for `datasetpath` (default ~/.fastblocks/datasets)
FASTBLOCKS_SHOW_BACKEND  default show backend: 'text' or 'plots' (default 'text')
FASTBLOCKS_LOGLEVEL      level name used by `setup_logging` when none is given
NN_DISABLE_AUTO_THREADS  set to 1 to keep BLAS thread counts untouched on import
"""
from __future__ import annotations
import os
from pathlib import Path

SHOW_BACKENDS = ('text', 'plots')


def datadir() -> Path:
    return Path(os.environ.get('FASTBLOCKS_DATADIR', Path.home() / '.fastblocks' / 'datasets')).expanduser()


def show_backend_name() -> str:
    name = os.environ.get('FASTBLOCKS_SHOW_BACKEND', 'text').lower()
    if name not in SHOW_BACKENDS:
        raise ValueError(f"FASTBLOCKS_SHOW_BACKEND must be one of {SHOW_BACKENDS}, got {name!r}")
    return name


def loglevel() -> str:
    return os.environ.get('FASTBLOCKS_LOGLEVEL', 'INFO').upper()
