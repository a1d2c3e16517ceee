"""Layer definitions for the nn module.
Pure NumPy implementations of the layers used by the learning tasks.

All spatial layers use channels-last arrays: ``(batch, H, W, C)``.
"""
from __future__ import annotations
import numpy as np
from typing import Optional, Tuple, Dict, Any, Iterator

from . import numba_ops

# Helper weight initializer functions

def glorot_uniform(shape, rng: np.random.Generator) -> np.ndarray:
    fan_in = np.prod(shape[:-1]) if len(shape) > 1 else shape[0]
    fan_out = shape[-1]
    limit = np.sqrt(6.0 / (fan_in + fan_out))
    return rng.uniform(-limit, limit, size=shape).astype(np.float32)


def batch_shape(x) -> Any:
    """Shape of a batch with the batch dimension replaced by ``None``.

    Tuples of arrays (e.g. encoded table rows) give tuples of shapes.
    """
    if isinstance(x, (tuple, list)):
        return tuple(batch_shape(xi) for xi in x)
    return (None,) + tuple(x.shape[1:])


class Layer:
    """Abstract layer base class."""
    def __init__(self):
        self.built = False
        self.params: Dict[str, np.ndarray] = {}
        self.grads: Dict[str, np.ndarray] = {}
        # non-trainable buffers that still have to be saved (running statistics)
        self.state: Dict[str, np.ndarray] = {}
        self.trainable = True

    def build(self, input_shape: Tuple[int, ...]):
        self.input_shape = input_shape
        self.output_shape = input_shape
        self.built = True

    def forward(self, x: np.ndarray, training: bool = False) -> np.ndarray:
        raise NotImplementedError

    def backward(self, grad: np.ndarray) -> Optional[np.ndarray]:
        raise NotImplementedError

    def __call__(self, x, training: bool = False):
        if not self.built:
            self.build(batch_shape(x))
        return self.forward(x, training=training)

    def named_parameters(self, prefix: str = '') -> Iterator[Tuple[str, np.ndarray, np.ndarray]]:
        for k, v in self.params.items():
            if self.trainable:
                yield prefix + k, v, self.grads[k]

    def state_dict(self, prefix: str = '') -> Dict[str, np.ndarray]:
        out = {prefix + k: v for k, v in self.params.items()}
        out.update({prefix + k: v for k, v in self.state.items()})
        return out

    def load_state_dict(self, weights: Dict[str, np.ndarray], prefix: str = '') -> int:
        """Copy matching arrays into this layer. Returns the number assigned."""
        n = 0
        for store in (self.params, self.state):
            for name in store.keys():
                key = prefix + name
                if key in weights and weights[key].shape == store[name].shape:
                    store[name] = np.asarray(weights[key], dtype=store[name].dtype)
                    n += 1
        return n

    def to_config(self) -> Dict[str, Any]:
        return {'class': self.__class__.__name__, 'config': {}}

    @classmethod
    def from_config(cls, config: Dict[str, Any]):
        return cls(**config)

    def __repr__(self):
        conf = self.to_config()['config']
        args = ', '.join(f"{k}={v!r}" for k, v in conf.items())
        return f"{self.__class__.__name__}({args})"


class Dense(Layer):
    def __init__(self, units: int, use_bias: bool = True, rng: Optional[np.random.Generator] = None):
        super().__init__()
        self.units = units
        self.use_bias = use_bias
        self.rng = rng or np.random.default_rng()

    def build(self, input_shape):
        in_features = input_shape[-1]
        self.params['W'] = glorot_uniform((in_features, self.units), self.rng)
        if self.use_bias:
            self.params['b'] = np.zeros((self.units,), dtype=np.float32)
        self.grads['W'] = np.zeros_like(self.params['W'])
        if self.use_bias:
            self.grads['b'] = np.zeros_like(self.params['b'])
        self.input_shape = input_shape
        self.output_shape = (*input_shape[:-1], self.units)
        self.built = True

    def forward(self, x, training=False):
        self.last_x = x
        y = x @ self.params['W']
        if self.use_bias:
            y = y + self.params['b']
        return y

    def backward(self, grad):
        x = self.last_x
        self.grads['W'][...] = x.reshape(-1, x.shape[-1]).T @ grad.reshape(-1, grad.shape[-1])
        if self.use_bias:
            self.grads['b'][...] = grad.sum(axis=tuple(range(len(grad.shape)-1)))
        return grad @ self.params['W'].T

    def to_config(self):
        return {'class': 'Dense', 'config': {'units': self.units, 'use_bias': self.use_bias}}


class Activation(Layer):
    def __init__(self, func: str = 'relu'):
        super().__init__()
        if func != 'relu':
            raise ValueError(f"Unknown activation {func}")
        self.func = func
        self.trainable = False

    def forward(self, x, training=False):
        self.last_x = x
        return np.maximum(0, x)

    def backward(self, grad):
        return grad * (self.last_x > 0)

    def to_config(self):
        return {'class': 'Activation', 'config': {'func': self.func}}


class Dropout(Layer):
    def __init__(self, rate: float = 0.5, rng: Optional[np.random.Generator] = None):
        super().__init__()
        self.rate = rate
        self.rng = rng or np.random.default_rng()
        self.trainable = False
        self.mask = None

    def forward(self, x, training=False):
        if training and self.rate > 0:
            self.mask = (self.rng.random(x.shape) >= self.rate).astype(x.dtype) / (1 - self.rate)
            return x * self.mask
        self.mask = None
        return x

    def backward(self, grad):
        if self.mask is None:
            return grad
        return grad * self.mask

    def to_config(self):
        return {'class': 'Dropout', 'config': {'rate': self.rate}}


class Conv2D(Layer):
    """2D convolution using im2col + GEMM (matrix multiply).

    The forward pass extracts patches with stride tricks and delegates to
    NumPy's BLAS; the col2im scatter of the backward pass runs in a numba
    kernel.
    """
    def __init__(self, filters: int, kernel_size: Tuple[int, int] = (3, 3), stride: int = 1, padding: str = 'same',
                 use_bias: bool = True, rng: Optional[np.random.Generator] = None):
        super().__init__()
        self.filters = filters
        self.kernel_size = tuple(kernel_size)
        self.stride = stride
        self.padding = padding
        self.use_bias = use_bias
        self.rng = rng or np.random.default_rng()

    def build(self, input_shape):
        _, h, w, c = input_shape
        kh, kw = self.kernel_size
        self.params['W'] = glorot_uniform((kh, kw, c, self.filters), self.rng)
        if self.use_bias:
            self.params['b'] = np.zeros((self.filters,), dtype=np.float32)
        self.grads['W'] = np.zeros_like(self.params['W'])
        if self.use_bias:
            self.grads['b'] = np.zeros_like(self.params['b'])
        if self.padding == 'same':
            out_h = int(np.ceil(h / self.stride))
            out_w = int(np.ceil(w / self.stride))
        else:
            out_h = (h - kh) // self.stride + 1
            out_w = (w - kw) // self.stride + 1
        self.input_shape = input_shape
        self.output_shape = (None, out_h, out_w, self.filters)
        self.built = True

    def _compute_padding(self, h, w):
        if self.padding == 'same':
            kh, kw = self.kernel_size
            pad_h_total = max((np.ceil(h / self.stride) - 1) * self.stride + kh - h, 0)
            pad_w_total = max((np.ceil(w / self.stride) - 1) * self.stride + kw - w, 0)
            pad_top = int(pad_h_total // 2)
            pad_bottom = int(pad_h_total - pad_top)
            pad_left = int(pad_w_total // 2)
            pad_right = int(pad_w_total - pad_left)
            return pad_top, pad_bottom, pad_left, pad_right
        return 0, 0, 0, 0

    def _im2col(self, x):
        batch, h, w, c = x.shape
        kh, kw = self.kernel_size
        pt, pb, pl, pr = self._compute_padding(h, w)
        x_p = np.pad(x, ((0, 0), (pt, pb), (pl, pr), (0, 0)), mode='constant')
        h_p, w_p = x_p.shape[1], x_p.shape[2]
        out_h = (h_p - kh)//self.stride + 1
        out_w = (w_p - kw)//self.stride + 1
        cols = np.lib.stride_tricks.as_strided(
            x_p,
            shape=(batch, out_h, out_w, kh, kw, c),
            strides=(x_p.strides[0], self.stride*x_p.strides[1], self.stride*x_p.strides[2],
                     x_p.strides[1], x_p.strides[2], x_p.strides[3])
        ).reshape(batch*out_h*out_w, kh*kw*c)
        return cols, out_h, out_w, (pt, pb, pl, pr), x_p.shape

    def forward(self, x, training=False):
        self.last_x = x
        cols, out_h, out_w, pads, padded_shape = self._im2col(x)
        W_col = self.params['W'].reshape(-1, self.filters)  # (kh*kw*c, F)
        out = cols @ W_col  # (N*out_h*out_w, F)
        if self.use_bias:
            out += self.params['b']
        batch = x.shape[0]
        out = out.reshape(batch, out_h, out_w, self.filters)
        self.cache = (cols, W_col, out_h, out_w, pads, padded_shape)
        return out

    def backward(self, grad):
        cols, W_col, out_h, out_w, pads, padded_shape = self.cache
        kh, kw = self.kernel_size
        batch = self.last_x.shape[0]
        grad_2d = grad.reshape(batch*out_h*out_w, self.filters)
        dW_col = cols.T @ grad_2d  # (kh*kw*c, F)
        self.grads['W'][...] = dW_col.reshape(kh, kw, self.last_x.shape[3], self.filters)
        if self.use_bias:
            self.grads['b'][...] = grad_2d.sum(axis=0)
        dcols = grad_2d @ W_col.T  # (N*out_h*out_w, kh*kw*c)
        pt, pb, pl, pr = pads
        _, h_p, w_p, c = padded_shape
        dx_p = np.zeros((batch, h_p, w_p, c), dtype=dcols.dtype)
        dcols_r = np.ascontiguousarray(dcols.reshape(batch, out_h, out_w, kh, kw, c))
        numba_ops.col2im_accumulate(dcols_r, dx_p, self.stride)
        return dx_p[:, pt:h_p-pb, pl:w_p-pr, :]

    def to_config(self):
        return {'class': 'Conv2D', 'config': {'filters': self.filters, 'kernel_size': list(self.kernel_size),
                                              'stride': self.stride, 'padding': self.padding, 'use_bias': self.use_bias}}


class MaxPool2D(Layer):
    def __init__(self, pool_size=(2, 2), stride=None):
        super().__init__()
        self.pool_size = tuple(pool_size)
        self.stride = stride or self.pool_size[0]
        self.trainable = False

    def build(self, input_shape):
        _, h, w, c = input_shape
        ph, pw = self.pool_size
        out_h = (h - ph) // self.stride + 1
        out_w = (w - pw) // self.stride + 1
        self.input_shape = input_shape
        self.output_shape = (input_shape[0], out_h, out_w, c)
        self.built = True

    def forward(self, x, training=False):
        self.last_x = x
        batch, h, w, c = x.shape
        ph, pw = self.pool_size
        out_h = (h - ph) // self.stride + 1
        out_w = (w - pw) // self.stride + 1
        if self.stride == ph and self.stride == pw:
            x_reshaped = x[:, :out_h*ph, :out_w*pw, :].reshape(batch, out_h, ph, out_w, pw, c)
            y = x_reshaped.max(axis=(2, 4))
            max_mask = (x_reshaped == y[:, :, None, :, None, :])
            # ties share the gradient
            max_mask = max_mask / np.maximum(max_mask.sum(axis=(2, 4), keepdims=True), 1)
            self.cache = (max_mask, (out_h, out_w))
            return y
        self.cache = None
        y = np.zeros((batch, out_h, out_w, c), dtype=x.dtype)
        self.max_idx = np.zeros_like(y, dtype=np.int32)
        for i in range(out_h):
            for j in range(out_w):
                patch = x[:, i*self.stride:i*self.stride+ph, j*self.stride:j*self.stride+pw, :]
                flat = patch.reshape(batch, ph*pw, c)
                idx = flat.argmax(axis=1)
                self.max_idx[:, i, j, :] = idx
                y[:, i, j, :] = flat[np.arange(batch)[:, None], idx, np.arange(c)]
        return y

    def backward(self, grad):
        x = self.last_x
        batch, h, w, c = x.shape
        ph, pw = self.pool_size
        if self.cache is not None:
            max_mask, (out_h, out_w) = self.cache
            dx_reshaped = (max_mask * grad[:, :, None, :, None, :]).astype(x.dtype)
            dx = np.zeros_like(x)
            dx[:, :out_h*ph, :out_w*pw, :] = dx_reshaped.reshape(batch, out_h*ph, out_w*pw, c)
            return dx
        out_h, out_w = grad.shape[1], grad.shape[2]
        dx = np.zeros_like(x)
        for i in range(out_h):
            for j in range(out_w):
                idx = self.max_idx[:, i, j, :]
                rows = i*self.stride + idx // pw
                cols = j*self.stride + idx % pw
                n_idx, c_idx = np.meshgrid(np.arange(batch), np.arange(c), indexing='ij')
                np.add.at(dx, (n_idx, rows, cols, c_idx), grad[:, i, j, :])
        return dx

    def to_config(self):
        return {'class': 'MaxPool2D', 'config': {'pool_size': list(self.pool_size), 'stride': self.stride}}


class GlobalAvgPool2D(Layer):
    """Average over the spatial dimensions: ``(N, H, W, C) -> (N, C)``."""
    def __init__(self):
        super().__init__()
        self.trainable = False

    def build(self, input_shape):
        self.input_shape = input_shape
        self.output_shape = (input_shape[0], input_shape[-1])
        self.built = True

    def forward(self, x, training=False):
        self.orig_shape = x.shape
        return x.mean(axis=(1, 2))

    def backward(self, grad):
        _, h, w, _ = self.orig_shape
        return np.broadcast_to(grad[:, None, None, :] / (h * w), self.orig_shape).copy()


class Upsample2D(Layer):
    """Nearest-neighbour upsampling of the spatial dimensions by ``factor``."""
    def __init__(self, factor: int = 2):
        super().__init__()
        self.factor = int(factor)
        self.trainable = False

    def build(self, input_shape):
        n, h, w, c = input_shape
        f = self.factor
        self.input_shape = input_shape
        self.output_shape = (n, None if h is None else h * f, None if w is None else w * f, c)
        self.built = True

    def forward(self, x, training=False):
        f = self.factor
        return x.repeat(f, axis=1).repeat(f, axis=2)

    def backward(self, grad):
        n, h, w, c = grad.shape
        f = self.factor
        return grad.reshape(n, h // f, f, w // f, f, c).sum(axis=(2, 4))

    def to_config(self):
        return {'class': 'Upsample2D', 'config': {'factor': self.factor}}


class BatchNorm2D(Layer):
    """Batch normalization over every axis except the last (channel) axis."""
    def __init__(self, momentum=0.9, eps=1e-5):
        super().__init__()
        self.momentum = momentum
        self.eps = eps

    def build(self, input_shape):
        c = input_shape[-1]
        self.params['gamma'] = np.ones((c,), dtype=np.float32)
        self.params['beta'] = np.zeros((c,), dtype=np.float32)
        self.grads['gamma'] = np.zeros_like(self.params['gamma'])
        self.grads['beta'] = np.zeros_like(self.params['beta'])
        self.state['running_mean'] = np.zeros((c,), dtype=np.float32)
        self.state['running_var'] = np.ones((c,), dtype=np.float32)
        self.input_shape = input_shape
        self.output_shape = input_shape
        self.built = True

    def forward(self, x, training=False):
        self.last_x = x
        self.axes = tuple(range(x.ndim - 1))
        if training:
            mean = x.mean(axis=self.axes)
            var = x.var(axis=self.axes)
            self.batch_mean = mean
            self.batch_var = var
            m = self.momentum
            self.state['running_mean'] = (m * self.state['running_mean'] + (1-m) * mean).astype(np.float32)
            self.state['running_var'] = (m * self.state['running_var'] + (1-m) * var).astype(np.float32)
        else:
            mean = self.state['running_mean']
            var = self.state['running_var']
            self.batch_mean = mean
            self.batch_var = var
        self.x_hat = (x - mean) / np.sqrt(var + self.eps)
        return self.params['gamma'] * self.x_hat + self.params['beta']

    def backward(self, grad):
        axes = self.axes
        gamma = self.params['gamma']
        x_hat = self.x_hat
        N = np.prod([grad.shape[a] for a in axes])
        self.grads['gamma'][...] = (grad * x_hat).sum(axis=axes)
        self.grads['beta'][...] = grad.sum(axis=axes)
        dx_hat = grad * gamma
        var = self.batch_var + self.eps
        xc = self.last_x - self.batch_mean
        dvar = (dx_hat * xc * -0.5 * var**(-1.5)).sum(axis=axes)
        dmean = (dx_hat * -1/np.sqrt(var)).sum(axis=axes) + dvar * (-2*xc).sum(axis=axes)/N
        return dx_hat / np.sqrt(var) + dvar * 2*xc/N + dmean / N

    def to_config(self):
        return {'class': self.__class__.__name__, 'config': {'momentum': self.momentum, 'eps': self.eps}}


class BatchNorm1D(BatchNorm2D):
    """Batch normalization for ``(batch, features)`` inputs."""


class Embedding(Layer):
    """Lookup table ``(N, ...) int -> (N, ..., dim)``. Inputs get no gradient."""
    def __init__(self, num: int, dim: int, rng: Optional[np.random.Generator] = None):
        super().__init__()
        self.num = num
        self.dim = dim
        self.rng = rng or np.random.default_rng()

    def build(self, input_shape):
        self.params['W'] = (self.rng.standard_normal((self.num, self.dim)) * 0.01).astype(np.float32)
        self.grads['W'] = np.zeros_like(self.params['W'])
        self.input_shape = input_shape
        self.output_shape = (*input_shape, self.dim)
        self.built = True

    def forward(self, x, training=False):
        self.last_idx = np.asarray(x, dtype=np.int64)
        return self.params['W'][self.last_idx]

    def backward(self, grad):
        self.grads['W'][...] = 0
        np.add.at(self.grads['W'], self.last_idx.reshape(-1), grad.reshape(-1, self.dim))
        return None

    def to_config(self):
        return {'class': 'Embedding', 'config': {'num': self.num, 'dim': self.dim}}


class EmbeddingBag(Embedding):
    """Mean of the embeddings of a token sequence, ignoring ``padding_idx``.

    ``(N, L) int -> (N, dim)``
    """
    def __init__(self, num: int, dim: int, padding_idx: int = 0, rng: Optional[np.random.Generator] = None):
        super().__init__(num, dim, rng=rng)
        self.padding_idx = padding_idx

    def build(self, input_shape):
        super().build(input_shape)
        self.output_shape = (input_shape[0], self.dim)

    def forward(self, x, training=False):
        idx = np.asarray(x, dtype=np.int64)
        self.last_idx = idx
        mask = (idx != self.padding_idx).astype(np.float32)
        self.counts = np.maximum(mask.sum(axis=1, keepdims=True), 1.0)
        self.mask = mask
        emb = self.params['W'][idx] * mask[..., None]
        return emb.sum(axis=1) / self.counts

    def backward(self, grad):
        # grad: (N, dim) -> per-token (N, L, dim)
        per_token = (grad / self.counts)[:, None, :] * self.mask[..., None]
        self.grads['W'][...] = 0
        np.add.at(self.grads['W'], self.last_idx.reshape(-1), per_token.reshape(-1, self.dim))
        return None

    def to_config(self):
        return {'class': 'EmbeddingBag', 'config': {'num': self.num, 'dim': self.dim, 'padding_idx': self.padding_idx}}


NAME2LAYER = {cls.__name__: cls for cls in [
    Dense, Activation, Dropout, Conv2D, MaxPool2D, GlobalAvgPool2D, Upsample2D,
    BatchNorm2D, BatchNorm1D, Embedding, EmbeddingBag,
]}


def register_layer(cls):
    """Class decorator making a layer available to ``layer_from_config``."""
    NAME2LAYER[cls.__name__] = cls
    return cls


def layer_from_config(conf: Dict[str, Any]) -> Layer:
    try:
        cls = NAME2LAYER[conf['class']]
    except KeyError:
        raise KeyError(f"Unknown layer class {conf['class']!r}") from None
    return cls.from_config(conf['config'])
