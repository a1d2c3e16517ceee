"""Projective transforms: resizing, cropping and geometric augmentation.

Images and masks of one sample share the random state, so a mask stays
aligned with its image. Masks are resampled with nearest-neighbour
interpolation and keep their class values.
"""
from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from PIL import Image as PILImage

from ..context import Training
from ..datablock.block import wrapped
from ..datablock.encoding import StatefulEncoding
from .blocks import Image, Mask, to_float_image


@dataclass(frozen=True)
class ProjectionAugmentations:
    """Random geometric augmentations applied in the training context."""
    flipx: bool = True
    flipy: bool = False
    max_rotate: float = 10.0
    max_zoom: float = 1.5
    p_rotate: float = 0.75

    def __post_init__(self):
        if self.max_zoom < 1:
            raise ValueError(f"max_zoom must be >= 1, got {self.max_zoom}")


def augs_projection(flipx: bool = True, flipy: bool = False, max_rotate: float = 10.0, max_zoom: float = 1.5,
                    p_rotate: float = 0.75) -> ProjectionAugmentations:
    return ProjectionAugmentations(flipx, flipy, max_rotate, max_zoom, p_rotate)


def _transform_channel(arr: np.ndarray, resize: Tuple[int, int], angle: float, nearest: bool) -> np.ndarray:
    resample = PILImage.NEAREST if nearest else PILImage.BILINEAR
    img = PILImage.fromarray(np.ascontiguousarray(arr, dtype=np.float32))
    img = img.resize((resize[1], resize[0]), resample)
    if angle:
        img = img.rotate(angle, resample=resample)
    return np.asarray(img, dtype=np.float32)


def _transform_array(arr: np.ndarray, resize, angle, nearest) -> np.ndarray:
    if arr.ndim == 2:
        return _transform_channel(arr, resize, angle, nearest)
    return np.stack([_transform_channel(arr[..., c], resize, angle, nearest) for c in range(arr.shape[-1])], axis=-1)


class ProjectiveTransforms(StatefulEncoding):
    """Resize and crop `Image` and `Mask` observations to ``sz``.

    In the training context the crop position, zoom, flips and rotation are
    random (see `augs_projection`); otherwise the image is scaled to cover
    ``sz`` and center-cropped.

    Args:
        sz: Output size ``(height, width)``
        augmentations: `ProjectionAugmentations`, or ``None`` for no augmentation
        buffered: Accepted for API compatibility; arrays are always freshly allocated
    """

    def __init__(self, sz: Tuple[int, int], augmentations: Optional[ProjectionAugmentations] = None,
                 buffered: bool = False, rng: Optional[np.random.Generator] = None):
        if len(sz) != 2:
            raise ValueError(f"ProjectiveTransforms supports 2D images, got size {sz}")
        self.sz = tuple(int(s) for s in sz)
        self.augmentations = augmentations
        self.buffered = buffered
        self.rng = rng or np.random.default_rng()

    def encodedblock(self, block):
        if isinstance(block, (Image, Mask)) and block.N == 2:
            return block
        return None

    def decodedblock(self, block):
        return None

    def encodestate(self, context, blocks, obss):
        size = _find_size(blocks, obss)
        if size is None:
            return None
        return self._drawstate(context, size)

    def _drawstate(self, context, size):
        H, W = size
        h, w = self.sz
        scale = max(h / H, w / W)
        augs = self.augmentations if context == Training else None
        flipx = flipy = False
        angle = 0.0
        if augs is not None:
            scale *= self.rng.uniform(1.0, augs.max_zoom)
            flipx = augs.flipx and bool(self.rng.random() < 0.5)
            flipy = augs.flipy and bool(self.rng.random() < 0.5)
            if augs.max_rotate and self.rng.random() < augs.p_rotate:
                angle = float(self.rng.uniform(-augs.max_rotate, augs.max_rotate))
        rh, rw = max(h, math.ceil(H * scale)), max(w, math.ceil(W * scale))
        if augs is not None:
            top = int(self.rng.integers(0, rh - h + 1))
            left = int(self.rng.integers(0, rw - w + 1))
        else:
            top, left = (rh - h) // 2, (rw - w) // 2
        return {'resize': (rh, rw), 'offset': (top, left), 'flipx': flipx, 'flipy': flipy, 'angle': angle}

    def encode(self, context, block, obs, state=None):
        if state is None:
            state = self._drawstate(context, np.shape(obs)[:2])
        if isinstance(block, Mask):
            values, inverse = np.unique(np.asarray(obs), return_inverse=True)
            idx = inverse.reshape(np.shape(obs)).astype(np.float32)
            out = self._apply(idx, state, nearest=True)
            return values[np.clip(out.round().astype(np.int64), 0, len(values) - 1)]
        return self._apply(to_float_image(obs), state, nearest=False)

    def _apply(self, arr, state, nearest):
        arr = _transform_array(arr, state['resize'], state['angle'], nearest)
        top, left = state['offset']
        h, w = self.sz
        arr = arr[top:top + h, left:left + w]
        if state['flipx']:
            arr = arr[:, ::-1]
        if state['flipy']:
            arr = arr[::-1]
        return np.ascontiguousarray(arr)

    def __repr__(self):
        return f"ProjectiveTransforms({self.sz})"


def _find_size(blocks, obss):
    if isinstance(blocks, tuple):
        for b, o in zip(blocks, obss):
            size = _find_size(b, o)
            if size is not None:
                return size
        return None
    if isinstance(wrapped(blocks), (Image, Mask)):
        return np.shape(obss)[:2]
    return None
