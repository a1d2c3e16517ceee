"""Dataset recipe for text files stored in one folder per class."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ..blocks.label import Label
from ..data import mapobs
from ..datasets.files import PathLike, istextfile, loadfile, loadfolderdata, parentname
from ..datasets.recipes import DatasetRecipe, register_dataset
from .blocks import TextRow

logger = logging.getLogger(__name__)


def loadtextrow(path: Path) -> dict:
    return {'text': loadfile(path)}


@dataclass
class TextFolders(DatasetRecipe):
    """Text files in one folder per class, e.g. ``train/pos/0_9.txt``.

    ``split`` selects a subfolder (such as ``"train"``) to load from.
    """
    split: str = ''
    labelfn: Callable = parentname
    filterfn: Callable = istextfile
    blocktypes = (TextRow, Label)

    def load(self, path: PathLike):
        folder = Path(path) / self.split if self.split else Path(path)
        files = loadfolderdata(folder, filterfn=self.filterfn)
        if not files:
            raise ValueError(f"No text files found in {folder}")
        labels = [self.labelfn(f) for f in files]
        classes = tuple(sorted(set(labels)))
        logger.info("Found %d texts of %d classes in %s", len(files), len(classes), folder)
        return (mapobs(loadtextrow, files), labels), (TextRow(('text',)), Label(classes))


register_dataset('imdb', TextFolders('train'), "IMDB movie review sentiment (train split)")
