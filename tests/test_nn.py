import numpy as np
import pytest

from fastblocks.nn import (
    Activation, Adam, BatchNorm2D, Chain, Conv2D, Dense, EmbeddingBag, GlobalAvgPool2D, LogitCrossEntropy,
    MaxPool2D, MSE, SGD, Upsample2D,
)
from fastblocks.nn.layers import layer_from_config
from fastblocks.nn.model import nparams
from fastblocks.nn.optim import get_optimizer


def numerical_grad(f, x, eps=1e-3):
    grad = np.zeros_like(x, dtype=np.float64)
    it = np.nditer(x, flags=['multi_index'])
    for _ in it:
        i = it.multi_index
        old = x[i]
        x[i] = old + eps
        up = f()
        x[i] = old - eps
        down = f()
        x[i] = old
        grad[i] = (up - down) / (2 * eps)
    return grad


def test_dense_gradients_match_numerical(rng):
    layer = Dense(3, rng=rng)
    x = rng.standard_normal((4, 5)).astype(np.float64)
    target = rng.standard_normal((4, 3))
    loss = MSE()
    loss(layer(x), target)
    dx = layer.backward(loss.backward())

    def f():
        return loss.forward(layer.forward(x), target)

    np.testing.assert_allclose(dx, numerical_grad(f, x), rtol=1e-3, atol=1e-5)


def test_conv2d_same_padding_shapes(rng):
    conv = Conv2D(4, (3, 3), rng=rng)
    x = rng.standard_normal((2, 8, 8, 3)).astype(np.float32)
    y = conv(x, training=True)
    assert y.shape == (2, 8, 8, 4)
    dx = conv.backward(np.ones_like(y))
    assert dx.shape == x.shape
    assert conv.grads['W'].shape == (3, 3, 3, 4)


def test_conv2d_input_gradient_matches_numerical(rng):
    conv = Conv2D(2, (3, 3), rng=rng)
    x = rng.standard_normal((1, 4, 4, 2))
    loss = MSE()
    target = rng.standard_normal((1, 4, 4, 2))
    loss(conv(x), target)
    dx = conv.backward(loss.backward())

    def f():
        return loss.forward(conv.forward(x), target)

    np.testing.assert_allclose(dx, numerical_grad(f, x), rtol=1e-2, atol=1e-4)


def test_maxpool_routes_gradient_to_maximum():
    x = np.array([[1, 2], [4, 3]], dtype=np.float32).reshape(1, 2, 2, 1)
    pool = MaxPool2D((2, 2))
    y = pool(x)
    assert y.reshape(-1).tolist() == [4.0]
    dx = pool.backward(np.ones_like(y))
    assert dx.reshape(2, 2).tolist() == [[0, 0], [1, 0]]


def test_upsample_forward_and_backward():
    x = np.arange(4, dtype=np.float32).reshape(1, 2, 2, 1)
    up = Upsample2D(2)
    y = up(x)
    assert y.shape == (1, 4, 4, 1)
    assert y[0, :2, :2, 0].tolist() == [[0, 0], [0, 0]]
    dx = up.backward(np.ones_like(y))
    assert dx.shape == x.shape
    assert np.all(dx == 4)


def test_global_average_pool():
    x = np.ones((2, 3, 3, 4), dtype=np.float32)
    pool = GlobalAvgPool2D()
    assert pool(x).shape == (2, 4)
    assert pool.backward(np.ones((2, 4))).sum() == pytest.approx(8.0)


def test_batchnorm_uses_running_stats_at_inference(rng):
    bn = BatchNorm2D(momentum=0.0)
    x = (rng.standard_normal((8, 4, 4, 2)) * 3 + 5).astype(np.float32)
    y = bn(x, training=True)
    np.testing.assert_allclose(y.mean(axis=(0, 1, 2)), 0, atol=1e-4)
    np.testing.assert_allclose(bn.state['running_mean'], x.mean(axis=(0, 1, 2)), rtol=1e-5)
    y_inf = bn(x, training=False)
    np.testing.assert_allclose(y_inf, y, atol=1e-3)


def test_embeddingbag_ignores_padding(rng):
    emb = EmbeddingBag(10, 4, rng=rng)
    out = emb(np.array([[3, 0, 0], [3, 3, 0]]))
    np.testing.assert_allclose(out[0], emb.params['W'][3], rtol=1e-6)
    np.testing.assert_allclose(out[1], emb.params['W'][3], rtol=1e-6)
    assert emb.backward(np.ones((2, 4), dtype=np.float32)) is None
    assert emb.grads['W'][0].tolist() == [0, 0, 0, 0]


def test_chain_parameter_names_are_dotted_paths(rng):
    model = Chain([Chain([Dense(4, rng=rng), Activation('relu')]), Dense(2, rng=rng)])
    model(np.zeros((1, 3), dtype=np.float32))
    names = [name for name, _, _ in model.named_parameters()]
    assert names == ['0.0.W', '0.0.b', '1.W', '1.b']
    assert nparams(model) == 3 * 4 + 4 + 4 * 2 + 2


def test_chain_save_and_load_roundtrip(tmp_path, rng):
    model = Chain([Conv2D(3, (3, 3), rng=rng), BatchNorm2D(), Activation('relu'), GlobalAvgPool2D(), Dense(2)])
    x = rng.standard_normal((2, 6, 6, 1)).astype(np.float32)
    model(x, training=True)
    expected = model(x)
    path = str(tmp_path / 'model.h5')
    model.save(path)
    loaded = Chain.load(path)
    np.testing.assert_allclose(loaded(x), expected, rtol=1e-5)


def test_layer_from_config_roundtrip():
    conv = Conv2D(5, (1, 1), stride=2, padding='valid')
    clone = layer_from_config(conv.to_config())
    assert isinstance(clone, Conv2D)
    assert (clone.filters, clone.kernel_size, clone.stride, clone.padding) == (5, (1, 1), 2, 'valid')


def test_layer_from_config_unknown_class():
    with pytest.raises(KeyError):
        layer_from_config({'class': 'Nope', 'config': {}})


def test_logit_crossentropy_gradient():
    logits = np.array([[2.0, 0.0, -1.0]])
    y = np.array([[1.0, 0.0, 0.0]])
    loss = LogitCrossEntropy()
    value = loss(logits, y)
    probs = np.exp(logits) / np.exp(logits).sum()
    assert value == pytest.approx(-np.log(probs[0, 0]))
    np.testing.assert_allclose(loss.backward(), probs - y, rtol=1e-5)


def test_optimizer_scale_zero_freezes_parameter():
    for opt in (SGD(lr=0.1), Adam(lr=0.1)):
        p = np.ones(3, dtype=np.float32)
        q = np.ones(3, dtype=np.float32)
        g = np.ones(3, dtype=np.float32)
        opt.step([(p, g, 0.0), (q, g)])
        assert p.tolist() == [1, 1, 1]
        assert np.all(q < 1)


def test_get_optimizer_by_name():
    assert isinstance(get_optimizer('adam'), Adam)
    assert get_optimizer('sgd', lr=0.5).lr == 0.5
    with pytest.raises(KeyError):
        get_optimizer('lbfgs')


def test_gradient_clipping_and_weight_decay():
    p = np.zeros(2, dtype=np.float32)
    SGD(lr=1.0).configure(clip_norm=1.0).step([(p, np.array([3.0, 4.0], dtype=np.float32))])
    np.testing.assert_allclose(p, [-0.6, -0.8], rtol=1e-6)
    p = np.ones(2, dtype=np.float32)
    SGD(lr=1.0).configure(weight_decay=0.5).step([(p, np.zeros(2, dtype=np.float32))])
    np.testing.assert_allclose(p, [0.5, 0.5])


def test_activation_is_relu_only():
    with pytest.raises(ValueError):
        Activation('softmax')
