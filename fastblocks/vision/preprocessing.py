"""Image normalization and lighting augmentation."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..context import Training
from ..data import getobs, numobs
from ..datablock.encoding import Encoding
from .blocks import Image, ImageTensor, to_float_image

IMAGENET_MEANS = (0.485, 0.456, 0.406)
IMAGENET_STDS = (0.229, 0.224, 0.225)

# channel layouts understood by `ImagePreprocessing`
NCHANNELS = {'RGB': 3, 'L': 1}
_LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float32)


def convert_channels(img: np.ndarray, C: str) -> np.ndarray:
    """Convert a float image to ``(H, W, nchannels)`` for colour layout ``C``."""
    if C not in NCHANNELS:
        raise ValueError(f"Unknown colour layout {C!r}, expected one of {sorted(NCHANNELS)}")
    if img.ndim == 2:
        img = img[..., None]
    if img.shape[-1] == 4:
        img = img[..., :3]
    if C == 'RGB' and img.shape[-1] == 1:
        return np.repeat(img, 3, axis=-1)
    if C == 'L' and img.shape[-1] == 3:
        return (img @ _LUMA)[..., None]
    return img


@dataclass(frozen=True)
class LightingAugmentations:
    """Random brightness and contrast changes, each applied with probability ``p``."""
    intensity: float = 0.2
    p: float = 0.75

    def __call__(self, img: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        if rng.random() < self.p:
            img = img + rng.uniform(-self.intensity, self.intensity)
        if rng.random() < self.p:
            mean = img.mean()
            img = (img - mean) * rng.uniform(1 - self.intensity, 1 + self.intensity) + mean
        return np.clip(img, 0.0, 1.0)


def augs_lighting(intensity: float = 0.2, p: float = 0.75) -> LightingAugmentations:
    return LightingAugmentations(intensity, p)


class ImagePreprocessing(Encoding):
    """Turn an `Image` into a normalized `ImageTensor` and back.

    Images are scaled to [0, 1], converted to colour layout ``C``
    (``"RGB"`` or ``"L"``) and normalized with ``means`` and ``stds``.
    Lighting ``augmentations`` are only applied in the training context.
    """

    def __init__(self, means: Sequence[float] = IMAGENET_MEANS, stds: Sequence[float] = IMAGENET_STDS,
                 C: str = 'RGB', dtype=np.float32, augmentations: Optional[LightingAugmentations] = None,
                 buffered: bool = False, rng: Optional[np.random.Generator] = None):
        if C not in NCHANNELS:
            raise ValueError(f"Unknown colour layout {C!r}, expected one of {sorted(NCHANNELS)}")
        nch = NCHANNELS[C]
        self.means = np.broadcast_to(np.asarray(means, dtype=np.float32), (nch,)).copy()
        self.stds = np.broadcast_to(np.asarray(stds, dtype=np.float32), (nch,)).copy()
        if np.any(self.stds <= 0):
            raise ValueError("`stds` must be positive")
        self.C = C
        self.dtype = dtype
        self.augmentations = augmentations
        self.buffered = buffered
        self.rng = rng or np.random.default_rng()

    @property
    def nchannels(self) -> int:
        return NCHANNELS[self.C]

    @classmethod
    def setup(cls, block, data, C: str = 'RGB', n: Optional[int] = None, **kwargs) -> 'ImagePreprocessing':
        """Create an `ImagePreprocessing` with means and stds computed from ``data``."""
        means, stds = imagedatasetstats(data, C=C, n=n)
        return cls(means, stds, C=C, **kwargs)

    def encodedblock(self, block):
        if isinstance(block, Image):
            return ImageTensor(block.N, self.nchannels)
        return None

    def decodedblock(self, block):
        if isinstance(block, ImageTensor):
            return Image(block.N)
        return None

    def encode(self, context, block, obs, state=None):
        img = convert_channels(to_float_image(obs), self.C)
        if self.augmentations is not None and context == Training:
            img = self.augmentations(img, self.rng)
        return ((img - self.means) / self.stds).astype(self.dtype)

    def decode(self, context, block, obs, state=None):
        img = np.clip(np.asarray(obs, dtype=np.float32) * self.stds + self.means, 0.0, 1.0)
        if self.C == 'L':
            return img[..., 0]
        return img

    def __repr__(self):
        return f"ImagePreprocessing({self.C})"


def imagedatasetstats(data, C: str = 'RGB', n: Optional[int] = None, rng: Optional[np.random.Generator] = None):
    """Per-channel means and standard deviations over a container of images.

    Args:
        data: Container of images
        C: Colour layout the statistics are computed for
        n: If given, use a random subset of ``n`` images

    Returns:
        ``(means, stds)`` as float32 arrays
    """
    total = numobs(data)
    if total == 0:
        raise ValueError("Cannot compute statistics of an empty dataset")
    idxs = np.arange(total)
    if n is not None and n < total:
        idxs = (rng or np.random.default_rng()).choice(total, size=n, replace=False)
    s = s2 = 0.0
    count = 0
    for i in idxs:
        img = convert_channels(to_float_image(getobs(data, i)), C).reshape(-1, NCHANNELS[C]).astype(np.float64)
        s = s + img.sum(axis=0)
        s2 = s2 + (img ** 2).sum(axis=0)
        count += img.shape[0]
    means = s / count
    stds = np.sqrt(np.maximum(s2 / count - means ** 2, 1e-12))
    return means.astype(np.float32), stds.astype(np.float32)
