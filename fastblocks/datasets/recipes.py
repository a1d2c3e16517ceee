"""Dataset recipes and the dataset registry.

A recipe knows how to turn a folder on disk into a data container and the
blocks describing its observations. Registering a recipe under a dataset
name makes it available to `loaddataset`.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..datablock.registry import matchblocktypes
from .files import PathLike, datasetpath

logger = logging.getLogger(__name__)


class DatasetRecipe:
    """Base class of recipes.

    Subclasses set ``blocktypes`` to the block types of the observations
    they produce and implement `load`.
    """
    blocktypes: Tuple[type, ...] = ()

    def load(self, path: PathLike):
        """Returns ``(data, blocks)``."""
        raise NotImplementedError


@dataclass
class DatasetEntry:
    name: str
    recipe: DatasetRecipe
    description: str = ''

    @property
    def blocktypes(self):
        return self.recipe.blocktypes


DATASETS: List[DatasetEntry] = []


def register_dataset(name: str, recipe: DatasetRecipe, description: str = '') -> DatasetEntry:
    """Make ``recipe`` available for the dataset folder ``name``."""
    entry = DatasetEntry(name, recipe, description)
    DATASETS.append(entry)
    return entry


def finddatasets(blocks=None, name: Optional[str] = None) -> List[DatasetEntry]:
    """Registered datasets, optionally filtered by dataset ``name`` and by
    block types (or blocks) their recipes produce."""
    found = []
    for entry in DATASETS:
        if name is not None and entry.name != name:
            continue
        if blocks is not None and not matchblocktypes(tuple(blocks), entry.blocktypes):
            continue
        found.append(entry)
    return found


def loaddataset(name: str, blocks=None, path: Optional[PathLike] = None):
    """Load the dataset ``name`` with the first matching recipe.

    Args:
        name: Registered dataset name, also the folder name below the data directory
        blocks: Block types the observations should have, e.g. ``(Image, Label)``
        path: Folder to load from instead of ``datasetpath(name)``

    Returns:
        ``(data, blocks)``

    Raises:
        KeyError: If no recipe is registered for ``name`` and ``blocks``
        FileNotFoundError: If the dataset folder does not exist
    """
    entries = finddatasets(blocks, name)
    if not entries:
        raise KeyError(f"No dataset recipe registered for {name!r} with blocks {blocks}; "
                       f"known datasets: {sorted({e.name for e in DATASETS})}")
    path = datasetpath(name) if path is None else Path(path)
    logger.info("Loading dataset %s from %s", name, path)
    return entries[0].recipe.load(path)


def listdatasets() -> Dict[str, List[DatasetEntry]]:
    out: Dict[str, List[DatasetEntry]] = {}
    for entry in DATASETS:
        out.setdefault(entry.name, []).append(entry)
    return out
