"""Dataset recipes for image datasets."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from ..blocks.label import Label
from ..data import mapobs
from ..datasets.files import PathLike, isimagefile, loadfile, loadfolderdata, parentname
from ..datasets.idx import load_idx_gz
from ..datasets.recipes import DatasetRecipe, register_dataset
from .blocks import Image, Mask

logger = logging.getLogger(__name__)


@dataclass
class ImageFolders(DatasetRecipe):
    """Images stored in one folder per class, e.g. ``train/dog/001.jpg``.

    Args:
        labelfn: Maps an image path to its class (default: name of the parent folder)
        filterfn: Selects the files to load (default: image files)
    """
    labelfn: Callable = parentname
    filterfn: Callable = isimagefile
    blocktypes = (Image, Label)

    def load(self, path: PathLike):
        files = loadfolderdata(path, filterfn=self.filterfn)
        if not files:
            raise ValueError(f"No image files found in {path}")
        labels = [self.labelfn(f) for f in files]
        classes = tuple(sorted(set(labels)))
        logger.info("Found %d images of %d classes in %s", len(files), len(classes), path)
        return (mapobs(loadfile, files), labels), (Image(2), Label(classes))


def _maskfile(imagefile: Path, maskdir: Path) -> Path:
    for candidate in (maskdir / imagefile.name, maskdir / f"{imagefile.stem}_P.png",
                      maskdir / f"{imagefile.stem}.png"):
        if candidate.is_file():
            return candidate
    raise FileNotFoundError(f"No mask for {imagefile.name} in {maskdir}")


@dataclass
class ImageSegmentationFolders(DatasetRecipe):
    """Images in ``imagefolder`` with masks of the same name in ``maskfolder``.

    Mask pixel values index into the class names listed one per line in
    ``labelfile``.
    """
    imagefolder: str = 'images'
    maskfolder: str = 'labels'
    labelfile: str = 'codes.txt'
    blocktypes = (Image, Mask)

    def load(self, path: PathLike):
        path = Path(path)
        codes = path / self.labelfile
        if not codes.is_file():
            raise FileNotFoundError(f"Class names file not found: {codes}")
        classnames = [line.strip() for line in codes.read_text(encoding='utf-8').splitlines() if line.strip()]
        images = loadfolderdata(path / self.imagefolder, filterfn=isimagefile)
        maskdir = path / self.maskfolder
        masks = [_maskfile(f, maskdir) for f in images]
        logger.info("Found %d images with masks of %d classes in %s", len(images), len(classnames), path)
        return ((mapobs(loadfile, images), mapobs(loadfile, masks)),
                (Image(2), Mask(2, tuple(range(len(classnames))))))


@dataclass
class IDXDataset(DatasetRecipe):
    """Images and labels in gzipped IDX files such as MNIST."""
    images_file: str = 'train-images-idx3-ubyte.gz'
    labels_file: str = 'train-labels-idx1-ubyte.gz'
    classes: Optional[tuple] = None
    blocktypes = (Image, Label)

    def load(self, path: PathLike):
        path = Path(path)
        images = load_idx_gz(str(path / self.images_file))
        labels = load_idx_gz(str(path / self.labels_file))
        if len(images) != len(labels):
            raise ValueError(
                f"Images and labels must have same length, got {len(images)} and {len(labels)}")
        classes = self.classes
        if classes is None:
            classes = tuple(int(c) for c in np.unique(labels))
        return (images, labels.tolist()), (Image(2), Label(classes))


register_dataset('mnist', IDXDataset(), "MNIST handwritten digits (train split)")
register_dataset('mnist_test', IDXDataset('t10k-images-idx3-ubyte.gz', 't10k-labels-idx1-ubyte.gz'),
                 "MNIST handwritten digits (test split)")
register_dataset('imagenette2-160', ImageFolders(), "Imagenette subset of ImageNet, 160px")
register_dataset('mnist_png', ImageFolders(), "MNIST digits stored as PNG folders")
register_dataset('camvid_tiny', ImageSegmentationFolders(), "Tiny CamVid street scene segmentation")
