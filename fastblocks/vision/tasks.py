"""Learning tasks for image classification and segmentation."""
from __future__ import annotations
import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from ..blocks.label import Label, LabelMulti
from ..data import mapobs
from ..datablock.encoding import setup
from ..datablock.registry import TASK_REGISTRY
from ..datablock.task import SupervisedTask
from ..encodings.onehot import OneHot
from .blocks import Image, Mask
from .preprocessing import IMAGENET_MEANS, IMAGENET_STDS, ImagePreprocessing, LightingAugmentations
from .transforms import ProjectionAugmentations, ProjectiveTransforms

logger = logging.getLogger(__name__)


def _imagepreprocessing(data, C, computestats, augmentations) -> ImagePreprocessing:
    if computestats:
        if data is None:
            raise ValueError("`computestats=True` needs `data` to compute image statistics from")
        logger.info("Computing image statistics for normalization")
        images = data[0] if isinstance(data, tuple) else mapobs(lambda sample: sample[0], data)
        return setup(ImagePreprocessing, Image(2), images, C=C, augmentations=augmentations)
    means, stds = (IMAGENET_MEANS, IMAGENET_STDS) if C == 'RGB' else ((0.5,), (0.25,))
    return ImagePreprocessing(means, stds, C=C, augmentations=augmentations)


def _image_encodings(size, aug_projections, aug_image, data, C, computestats):
    return (
        ProjectiveTransforms(size, augmentations=aug_projections),
        _imagepreprocessing(data, C, computestats, aug_image),
        OneHot(),
    )


@TASK_REGISTRY.register((Image, Label), description="Single-label image classification")
def ImageClassificationSingle(blocks: Tuple[Image, Label], data=None, size: Tuple[int, int] = (128, 128),
                              aug_projections: Optional[ProjectionAugmentations] = None,
                              aug_image: Optional[LightingAugmentations] = None, C: str = 'RGB',
                              computestats: bool = False) -> SupervisedTask:
    """Classify an image into one of the classes of a `Label` block.

    Args:
        blocks: ``(Image(2), Label(classes))``
        data: Data container; only used when ``computestats`` is set
        size: Size the images are resized and cropped to
        aug_projections: Geometric augmentations (see `augs_projection`)
        aug_image: Lighting augmentations (see `augs_lighting`)
        computestats: Normalize with statistics computed from ``data``
            instead of ImageNet statistics
    """
    return SupervisedTask(blocks, _image_encodings(size, aug_projections, aug_image, data, C, computestats))


@TASK_REGISTRY.register((Image, LabelMulti), description="Multi-label image classification")
def ImageClassificationMulti(blocks: Tuple[Image, LabelMulti], data=None, size: Tuple[int, int] = (128, 128),
                             aug_projections: Optional[ProjectionAugmentations] = None,
                             aug_image: Optional[LightingAugmentations] = None, C: str = 'RGB',
                             computestats: bool = False) -> SupervisedTask:
    """Find every class of a `LabelMulti` block present in an image."""
    return SupervisedTask(blocks, _image_encodings(size, aug_projections, aug_image, data, C, computestats))


@TASK_REGISTRY.register((Image, Mask), description="Semantic segmentation of images")
def ImageSegmentation(blocks: Tuple[Image, Mask], data=None, size: Tuple[int, int] = (128, 128),
                      aug_projections: Optional[ProjectionAugmentations] = None,
                      aug_image: Optional[LightingAugmentations] = None, C: str = 'RGB',
                      computestats: bool = False) -> SupervisedTask:
    """Predict a class for every pixel of an image.

    Image and mask share their random projection, so the mask stays aligned.
    ``size`` should be divisible by the downsampling factor of the backbone.
    """
    return SupervisedTask(blocks, _image_encodings(size, aug_projections, aug_image, data, C, computestats))


class ImageClassification(SupervisedTask):
    """Single-label image classification over ``classes``.

    Images are resized and cropped to ``sz`` with `ProjectiveTransforms` and
    normalized with `ImagePreprocessing`; targets are one-hot encoded.
    Models map ``(batch, *sz, 3)`` to ``(batch, len(classes))`` class
    scores and should not end in a softmax, since the loss works on logits.
    """

    def __init__(self, classes: Sequence, sz: Tuple[int, int] = (224, 224),
                 augmentations: Optional[ProjectionAugmentations] = None,
                 means=IMAGENET_MEANS, stds=IMAGENET_STDS, C: str = 'RGB', dtype=np.float32,
                 buffered: bool = False):
        self.sz = tuple(sz)
        self.classes = tuple(classes)
        self.projectivetransforms = ProjectiveTransforms(sz, augmentations=augmentations, buffered=buffered)
        self.imagepreprocessing = ImagePreprocessing(means, stds, C=C, dtype=dtype, buffered=buffered)
        super().__init__((Image(2), Label(self.classes)),
                         (self.projectivetransforms, self.imagepreprocessing, OneHot(dtype=dtype)))

    def __repr__(self):
        return f"ImageClassification() with {len(self.classes)} classes"
