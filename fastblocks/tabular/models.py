"""Embedding + MLP model for encoded table rows."""
from __future__ import annotations
from typing import Any, Dict, Optional, Sequence

import numpy as np

from ..blocks.continuous import Continuous
from ..datablock.models import register_blockbackbone, register_blockmodel
from ..encodings.onehot import OneHotTensor
from ..nn.layers import (
    Activation, BatchNorm1D, Dense, Dropout, Embedding, Layer, register_layer,
)
from ..nn.model import Chain
from .blocks import EncodedTableRow, TableRow


def emb_sz_rule(n: int) -> int:
    """Embedding size for a categorical column with ``n`` categories."""
    return int(min(600, round(1.6 * n ** 0.56)))


@register_layer
class TabularModel(Layer):
    """Model taking ``(category indices, continuous values)`` batches.

    Every categorical column gets its own embedding; continuous columns are
    batch-normalized. Both are concatenated and fed through a stack of
    dense-relu-batchnorm-dropout blocks and, if ``outsize`` is given, a
    final dense layer.

    Args:
        cardinalities: Number of categories (including the "missing" index 0) per column
        ncont: Number of continuous columns
        outsize: Output features, or ``None`` to end after the hidden layers
        layersizes: Sizes of the hidden layers
        dropout: Dropout rate after each hidden layer
        embszs: Embedding sizes; defaults to `emb_sz_rule` of each cardinality
    """

    def __init__(self, cardinalities: Sequence[int], ncont: int, outsize: Optional[int] = None,
                 layersizes: Sequence[int] = (200, 100), dropout: float = 0.1,
                 embszs: Optional[Sequence[int]] = None, rng: Optional[np.random.Generator] = None):
        super().__init__()
        self.cardinalities = [int(n) for n in cardinalities]
        self.ncont = int(ncont)
        self.outsize = outsize
        self.layersizes = [int(s) for s in layersizes]
        self.dropout = dropout
        self.embszs = [emb_sz_rule(n) for n in self.cardinalities] if embszs is None else [int(s) for s in embszs]
        if len(self.embszs) != len(self.cardinalities):
            raise ValueError("`embszs` needs one size per categorical column")
        rng = rng or np.random.default_rng()
        self.embeds = [Embedding(n, sz, rng=rng) for n, sz in zip(self.cardinalities, self.embszs)]
        self.bncont = BatchNorm1D() if self.ncont else None
        layers = []
        for size in self.layersizes:
            layers += [Dense(size, rng=rng), Activation('relu'), BatchNorm1D()]
            if dropout:
                layers.append(Dropout(dropout, rng=rng))
        if outsize is not None:
            layers.append(Dense(int(outsize), rng=rng))
        self.layers = Chain(layers)

    def _sublayers(self):
        for i, emb in enumerate(self.embeds):
            yield f"embeds.{i}.", emb
        if self.bncont is not None:
            yield "bncont.", self.bncont
        yield "layers.", self.layers

    def build(self, input_shape):
        for emb in self.embeds:
            emb.build((None,))
        if self.bncont is not None:
            self.bncont.build((None, self.ncont))
        self.layers.build((None, sum(self.embszs) + self.ncont))
        self.input_shape = input_shape
        self.output_shape = self.layers.output_shape
        self.built = True

    def forward(self, x, training=False):
        cats, conts = x
        if not self.built:
            self.build(((None, len(self.embeds)), (None, self.ncont)))
        parts = [emb.forward(cats[:, i], training=training) for i, emb in enumerate(self.embeds)]
        if self.bncont is not None:
            parts.append(self.bncont.forward(np.asarray(conts, dtype=np.float32), training=training))
        h = np.concatenate(parts, axis=1) if parts else np.zeros((len(cats), 0), dtype=np.float32)
        return self.layers.forward(h, training=training)

    def backward(self, grad):
        grad = self.layers.backward(grad)
        offset = 0
        for emb in self.embeds:
            emb.backward(grad[:, offset:offset + emb.dim])
            offset += emb.dim
        if self.bncont is not None:
            self.bncont.backward(grad[:, offset:])
        return None

    def named_parameters(self, prefix: str = ''):
        for name, layer in self._sublayers():
            yield from layer.named_parameters(prefix + name)

    def state_dict(self, prefix: str = '') -> Dict[str, np.ndarray]:
        weights = {}
        for name, layer in self._sublayers():
            weights.update(layer.state_dict(prefix + name))
        return weights

    def load_state_dict(self, weights, prefix: str = '') -> int:
        return sum(layer.load_state_dict(weights, prefix + name) for name, layer in self._sublayers())

    def to_config(self) -> Dict[str, Any]:
        return {'class': 'TabularModel', 'config': {
            'cardinalities': self.cardinalities, 'ncont': self.ncont, 'outsize': self.outsize,
            'layersizes': self.layersizes, 'dropout': self.dropout, 'embszs': self.embszs,
        }}


def _tabularbackbone(block) -> TabularModel:
    cardinalities = [len(block.categorydict.get(col, ())) + 1 for col in block.catcols]
    return TabularModel(cardinalities, len(block.contcols))


@register_blockbackbone(TableRow)
def _tablerow_backbone(block):
    missing = [col for col in block.catcols if col not in block.categorydict]
    if missing:
        raise ValueError(f"TableRow needs the categories of {missing} to build a model")
    return _tabularbackbone(block)


def _tabularhead(inblock: EncodedTableRow, outsize: int, backbone) -> Layer:
    if backbone is None:
        backbone = _tabularbackbone(inblock)
    return Chain([backbone, Dense(outsize)])


@register_blockmodel(EncodedTableRow, OneHotTensor)
def _tabular_classifier(inblock, outblock, backbone):
    if outblock.N != 0:
        raise NotImplementedError(f"No tabular model for {outblock.blockname}")
    return _tabularhead(inblock, len(outblock.classes), backbone)


@register_blockmodel(EncodedTableRow, Continuous)
def _tabular_regressor(inblock, outblock, backbone):
    return _tabularhead(inblock, outblock.size, backbone)
