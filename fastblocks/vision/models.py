"""Convolutional backbones and heads for image tasks."""
from __future__ import annotations
from typing import Sequence

from ..blocks.continuous import Continuous
from ..datablock.models import register_blockbackbone, register_blockmodel
from ..encodings.onehot import OneHotTensor
from ..nn import Activation, BatchNorm2D, Chain, Conv2D, Dense, GlobalAvgPool2D, MaxPool2D, Upsample2D
from .blocks import Image, ImageTensor


def convbackbone(channels: Sequence[int] = (16, 32, 64), pool: bool = True) -> Chain:
    """Stack of conv-batchnorm-relu stages, each followed by 2x2 max pooling.

    The number of input channels is taken from the first batch.
    """
    layers = []
    for c in channels:
        layers.append(Chain([Conv2D(c, (3, 3)), BatchNorm2D(), Activation('relu')]))
        if pool:
            layers.append(MaxPool2D((2, 2)))
    return Chain(layers)


def downsamplingfactor(model) -> int:
    """Spatial reduction of ``model``: product of pooling and conv strides."""
    if isinstance(model, Chain):
        factor = 1
        for layer in model:
            factor *= downsamplingfactor(layer)
        return factor
    if isinstance(model, (MaxPool2D, Conv2D)):
        return model.stride
    return 1


@register_blockbackbone(Image)
def _image_backbone(block):
    if block.N != 2:
        raise NotImplementedError(f"No default backbone for {block.N}-dimensional images")
    return convbackbone()


@register_blockmodel(ImageTensor, OneHotTensor)
def _image_classifier(inblock, outblock, backbone):
    if outblock.N == 2:
        return _image_segmenter(inblock, outblock, backbone)
    if outblock.N != 0:
        raise NotImplementedError(f"No image model for {outblock.blockname}")
    backbone = convbackbone() if backbone is None else backbone
    return Chain([backbone, Chain([GlobalAvgPool2D(), Dense(len(outblock.classes))])])


def _image_segmenter(inblock, outblock, backbone):
    backbone = convbackbone() if backbone is None else backbone
    head = [Conv2D(len(outblock.classes), (1, 1))]
    factor = downsamplingfactor(backbone)
    if factor > 1:
        head.append(Upsample2D(factor))
    return Chain([backbone, Chain(head)])


@register_blockmodel(ImageTensor, Continuous)
def _image_regressor(inblock, outblock, backbone):
    backbone = convbackbone() if backbone is None else backbone
    return Chain([backbone, Chain([GlobalAvgPool2D(), Dense(outblock.size)])])
