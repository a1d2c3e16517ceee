"""Locating datasets and loading files from disk."""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Callable, List, Optional, Union

import numpy as np
import pandas as pd
from PIL import Image as PILImage

from .. import config
from ..data import mapobs

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.bmp', '.gif', '.tif', '.tiff', '.webp')
TEXT_EXTENSIONS = ('.txt', '.md')

PathLike = Union[str, os.PathLike]


def datasetpath(name: str) -> Path:
    """Folder of the dataset ``name`` below the data directory.

    The data directory is ``$FASTBLOCKS_DATADIR`` (default
    ``~/.fastblocks/datasets``). Datasets are not downloaded.

    Raises:
        FileNotFoundError: If the folder does not exist
    """
    path = config.datadir() / name
    if not path.exists():
        raise FileNotFoundError(
            f"Dataset {name!r} not found at {path}\n"
            f"Please download it to that folder or set FASTBLOCKS_DATADIR to the folder containing it."
        )
    return path


def isimagefile(path: PathLike) -> bool:
    return Path(path).suffix.lower() in IMAGE_EXTENSIONS


def istextfile(path: PathLike) -> bool:
    return Path(path).suffix.lower() in TEXT_EXTENSIONS


def parentname(path: PathLike) -> str:
    return Path(path).parent.name


def grandparentname(path: PathLike) -> str:
    return Path(path).parent.parent.name


def loadfile(path: PathLike):
    """Load a file based on its extension.

    Images become uint8 arrays (``(H, W)`` for grayscale and palette
    images, ``(H, W, 3)`` otherwise), ``.csv`` files a `pandas.DataFrame`
    and text files a string.

    Raises:
        FileNotFoundError: If ``path`` does not exist
        ValueError: For unsupported file types
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    if isimagefile(path):
        with PILImage.open(path) as img:
            if img.mode not in ('L', 'P', 'RGB'):
                img = img.convert('RGB')
            return np.asarray(img)
    if path.suffix.lower() == '.csv':
        return pd.read_csv(path)
    if istextfile(path):
        return path.read_text(encoding='utf-8')
    raise ValueError(f"Don't know how to load {path.name!r}")


def loadfolderdata(dir: PathLike, filterfn: Optional[Callable[[Path], bool]] = None,
                   loadfn: Optional[Callable] = None):
    """All files below ``dir`` (recursively, sorted) accepted by ``filterfn``.

    Returns the list of paths, or a container loading each path with
    ``loadfn`` on access if one is given.
    """
    dir = Path(dir)
    if not dir.is_dir():
        raise FileNotFoundError(f"Folder not found: {dir}")
    files: List[Path] = sorted(p for p in dir.rglob('*') if p.is_file() and (filterfn is None or filterfn(p)))
    logger.debug("Found %d files in %s", len(files), dir)
    if loadfn is None:
        return files
    return mapobs(loadfn, files)
