"""Chain container: an ordered sequence of layers that is itself a layer.

Chains nest, so a task model is typically ``Chain([backbone, head])`` where
both parts are chains. Parameter keys are dotted paths (``"0.3.W"``) which
is what parameter groups and weight files refer to.
"""
from __future__ import annotations
import json
import os
import numpy as np
from typing import List, Optional, Dict, Any, Iterator, Tuple

from .layers import Layer, batch_shape, layer_from_config, register_layer
from . import io


@register_layer
class Chain(Layer):
    def __init__(self, layers: Optional[List[Layer]] = None):
        super().__init__()
        self.layers: List[Layer] = list(layers or [])

    def add(self, layer: Layer):
        self.layers.append(layer)
        self.built = False

    def __len__(self):
        return len(self.layers)

    def __getitem__(self, idx):
        if isinstance(idx, slice):
            return Chain(self.layers[idx])
        return self.layers[idx]

    def __iter__(self):
        return iter(self.layers)

    def build(self, input_shape):
        shape = input_shape
        for layer in self.layers:
            if not layer.built:
                layer.build(shape)
            shape = layer.output_shape
        self.input_shape = input_shape
        self.output_shape = shape
        self.built = True
        # weights read by `load` are assigned once shapes are known
        pending = getattr(self, '_pending_weights', None)
        if pending:
            self.load_state_dict(pending)
            del self._pending_weights

    def forward(self, x, training=False):
        if not self.built:
            self.build(batch_shape(x))
        for layer in self.layers:
            x = layer.forward(x, training=training)
        return x

    def backward(self, grad):
        for layer in reversed(self.layers):
            grad = layer.backward(grad)
            if grad is None:
                break
        return grad

    def named_parameters(self, prefix: str = '') -> Iterator[Tuple[str, np.ndarray, np.ndarray]]:
        for idx, layer in enumerate(self.layers):
            yield from layer.named_parameters(f"{prefix}{idx}.")

    def state_dict(self, prefix: str = '') -> Dict[str, np.ndarray]:
        weights = {}
        for idx, layer in enumerate(self.layers):
            weights.update(layer.state_dict(f"{prefix}{idx}."))
        return weights

    def load_state_dict(self, weights: Dict[str, np.ndarray], prefix: str = '') -> int:
        return sum(layer.load_state_dict(weights, f"{prefix}{idx}.") for idx, layer in enumerate(self.layers))

    def to_config(self) -> Dict[str, Any]:
        return {'class': 'Chain', 'config': {'layers': [layer.to_config() for layer in self.layers]}}

    @classmethod
    def from_config(cls, config: Dict[str, Any]):
        return cls([layer_from_config(conf) for conf in config['layers']])

    def __repr__(self):
        inner = ',\n'.join('  ' + line for layer in self.layers for line in repr(layer).splitlines())
        return f"Chain(\n{inner}\n)" if self.layers else "Chain()"

    def save(self, path: str):
        """Write weights to ``path`` (HDF5) and the architecture next to it as JSON."""
        base, _ = os.path.splitext(path)
        io.save_weights_hdf5(path, self.state_dict())
        with open(base + '.json', 'w') as f:
            json.dump({'architecture': self.to_config(), 'input_shape': _jsonable_shape(self.input_shape)
                       if self.built else None}, f)

    @classmethod
    def load(cls, path: str) -> 'Chain':
        base, _ = os.path.splitext(path)
        with open(base + '.json', 'r') as f:
            conf = json.load(f)
        model = layer_from_config(conf['architecture'])
        model._pending_weights = io.load_weights_hdf5(path)
        if conf.get('input_shape') is not None:
            model.build(_shape_from_json(conf['input_shape']))
        return model

    def summary(self):
        print("Model summary:")
        total = 0
        for idx, layer in enumerate(self.layers):
            params = sum(p.size for _, p, _ in layer.named_parameters())
            total += params
            print(f"{idx}: {layer.__class__.__name__}: params={params}")
        print(f"Total params: {total}")


def _jsonable_shape(shape):
    if isinstance(shape, tuple) and shape and isinstance(shape[0], tuple):
        return [list(s) for s in shape]
    return list(shape)


def _shape_from_json(shape):
    if shape and isinstance(shape[0], list):
        return tuple(tuple(s) for s in shape)
    return tuple(shape)


def nparams(model: Layer) -> int:
    return int(sum(p.size for _, p, _ in model.named_parameters()))
