"""Embedding-bag text classifier."""
from __future__ import annotations

from ..datablock.models import register_blockmodel
from ..encodings.onehot import OneHotTensor
from ..nn import Activation, Chain, Dense, Dropout, EmbeddingBag
from .blocks import EncodedTextRow


def textbackbone(vocabsize: int, embdim: int = 64, hidden: int = 64, dropout: float = 0.1) -> Chain:
    """Mean token embedding followed by one hidden layer."""
    layers = [EmbeddingBag(vocabsize, embdim, padding_idx=0), Dense(hidden), Activation('relu')]
    if dropout:
        layers.append(Dropout(dropout))
    return Chain(layers)


@register_blockmodel(EncodedTextRow, OneHotTensor)
def _text_classifier(inblock, outblock, backbone):
    if outblock.N != 0:
        raise NotImplementedError(f"No text model for {outblock.blockname}")
    backbone = textbackbone(inblock.vocabsize) if backbone is None else backbone
    return Chain([backbone, Dense(len(outblock.classes))])
