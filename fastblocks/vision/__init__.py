"""Computer vision: image blocks, encodings, models, tasks and recipes."""
from .blocks import Image, Mask, ImageTensor, asciiimage
from .transforms import ProjectiveTransforms, ProjectionAugmentations, augs_projection
from .preprocessing import (
    ImagePreprocessing, LightingAugmentations, augs_lighting, imagedatasetstats, IMAGENET_MEANS, IMAGENET_STDS,
)
from .models import convbackbone, downsamplingfactor
from .tasks import ImageClassificationSingle, ImageClassificationMulti, ImageSegmentation, ImageClassification
from .recipes import ImageFolders, ImageSegmentationFolders, IDXDataset

__all__ = [
    'Image', 'Mask', 'ImageTensor', 'asciiimage',
    'ProjectiveTransforms', 'ProjectionAugmentations', 'augs_projection',
    'ImagePreprocessing', 'LightingAugmentations', 'augs_lighting', 'imagedatasetstats',
    'IMAGENET_MEANS', 'IMAGENET_STDS', 'convbackbone', 'downsamplingfactor',
    'ImageClassificationSingle', 'ImageClassificationMulti', 'ImageSegmentation', 'ImageClassification',
    'ImageFolders', 'ImageSegmentationFolders', 'IDXDataset',
]
