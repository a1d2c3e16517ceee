"""Image blocks."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from PIL import Image as PILImage

from ..datablock.block import Block, mockrng
from ..encodings.onehot import OneHot

_SHADES = " .:-=+*#%@"


def asciiimage(arr: np.ndarray, width: int = 32) -> str:
    """Render a grayscale version of ``arr`` (values in [0, 1]) as text."""
    arr = np.asarray(arr, dtype=np.float32)
    if arr.ndim == 3:
        arr = arr[..., :3].mean(axis=-1)
    h, w = arr.shape
    # terminal cells are about twice as tall as wide
    height = max(1, int(round(width * h / w / 2)))
    small = np.asarray(PILImage.fromarray(arr).resize((width, height), PILImage.BILINEAR))
    lo, hi = float(small.min()), float(small.max())
    norm = (small - lo) / (hi - lo) if hi > lo else np.zeros_like(small)
    idx = np.clip((norm * (len(_SHADES) - 1)).round().astype(int), 0, len(_SHADES) - 1)
    return '\n'.join(''.join(_SHADES[i] for i in row) for row in idx)


def to_float_image(obs) -> np.ndarray:
    """uint8 images are scaled to [0, 1]; float images are taken as they are."""
    arr = np.asarray(obs)
    if arr.dtype == np.uint8:
        return arr.astype(np.float32) / 255.0
    return arr.astype(np.float32)


@dataclass(frozen=True)
class Image(Block):
    """An ``N``-dimensional image.

    Observations are arrays shaped ``(H, W)`` (grayscale) or ``(H, W, C)``
    with ``C`` in 1, 3 or 4, holding ``uint8`` values or floats in [0, 1].
    """
    N: int = 2

    def checkblock(self, obs) -> bool:
        if not isinstance(obs, np.ndarray) or not np.issubdtype(obs.dtype, np.number):
            return False
        if obs.ndim == self.N:
            return True
        return obs.ndim == self.N + 1 and obs.shape[-1] in (1, 3, 4)

    def mockblock(self):
        return mockrng().random((32,) * self.N + (3,)).astype(np.float32)

    def showtext(self, obs) -> str:
        if self.N != 2:
            return f"Image{{{self.N}}} {np.shape(obs)}"
        return asciiimage(to_float_image(obs))

    def showplot(self, ax, obs):
        img = np.clip(to_float_image(obs), 0, 1)
        if img.ndim == 3 and img.shape[-1] == 1:
            img = img[..., 0]
        ax.imshow(img, cmap='gray' if img.ndim == 2 else None)
        ax.axis('off')

    @property
    def blockname(self) -> str:
        return f"Image{{{self.N}}}"


@OneHot.register_grid_block
@dataclass(frozen=True)
class Mask(Block):
    """Segmentation mask: an ``N``-dimensional array of elements of ``classes``."""
    N: int = 2
    classes: Tuple = ()

    def __post_init__(self):
        object.__setattr__(self, 'classes', tuple(self.classes))

    def checkblock(self, obs) -> bool:
        obs = np.asarray(obs)
        return obs.ndim == self.N and bool(np.isin(obs, np.asarray(self.classes)).all())

    def mockblock(self):
        idx = mockrng().integers(len(self.classes), size=(32,) * self.N)
        return np.asarray(self.classes)[idx]

    def _indices(self, obs) -> np.ndarray:
        lookup = {c: i for i, c in enumerate(self.classes)}
        values, inverse = np.unique(np.asarray(obs), return_inverse=True)
        return np.array([lookup[v] for v in values.tolist()])[inverse.reshape(-1)].reshape(np.shape(obs))

    def showtext(self, obs) -> str:
        if self.N != 2:
            return f"Mask{{{self.N}}} {np.shape(obs)}"
        idx = self._indices(obs).astype(np.float32)
        return asciiimage(idx / max(len(self.classes) - 1, 1))

    def showplot(self, ax, obs):
        ax.imshow(self._indices(obs), cmap='tab20', vmin=0, vmax=max(len(self.classes) - 1, 1),
                  interpolation='nearest')
        ax.axis('off')

    @property
    def blockname(self) -> str:
        return f"Mask{{{self.N}}}({len(self.classes)} classes)"


@dataclass(frozen=True)
class ImageTensor(Block):
    """Normalized float image ``(H, W, nchannels)`` ready to be fed to a model."""
    N: int = 2
    nchannels: int = 3

    def checkblock(self, obs) -> bool:
        obs = np.asarray(obs)
        return obs.ndim == self.N + 1 and obs.shape[-1] == self.nchannels and np.issubdtype(obs.dtype, np.floating)

    def mockblock(self):
        return mockrng().standard_normal((32,) * self.N + (self.nchannels,)).astype(np.float32)

    def showtext(self, obs) -> str:
        return f"ImageTensor{{{self.N}}} {np.shape(obs)}"

    @property
    def blockname(self) -> str:
        return f"ImageTensor{{{self.N}}}({self.nchannels} channels)"
