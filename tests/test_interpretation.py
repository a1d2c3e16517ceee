import io

import numpy as np
import pytest
from rich.console import Console

from fastblocks.blocks import Continuous, Label
from fastblocks.datablock import SupervisedTask, makebatch
from fastblocks.encodings import OneHot
from fastblocks.interpretation import (
    ShowPlots, ShowText, default_showbackend, plotlrfind, showbatch, showblock, showblocks, showencodedsample,
    showoutputbatch, showoutputs, showprediction, showpredictions, showsample, showsamples,
)
from fastblocks.nn import Chain, Dense
from fastblocks.training import LRFinderResult, tasklearner


@pytest.fixture
def task():
    return SupervisedTask((Continuous(2), Label(['a', 'b'])), (OneHot(),))


@pytest.fixture
def data():
    xs = np.random.default_rng(0).standard_normal((20, 2)).astype(np.float32)
    return xs, ['b' if x.sum() > 0 else 'a' for x in xs]


@pytest.fixture
def model():
    model = Chain([Dense(2, rng=np.random.default_rng(0))])
    model(np.zeros((1, 2), dtype=np.float32))
    return model


@pytest.fixture
def text():
    out = io.StringIO()
    return ShowText(Console(file=out, width=120)), out


def test_showtext_prints_a_table(text):
    backend, out = text
    table = showblock(Label(['a', 'b']), 'b', backend=backend, title='one label')
    assert table.row_count == 1
    assert 'Label(2 classes)' in out.getvalue()
    assert 'one label' in out.getvalue()


def test_showtext_custom_names(text):
    backend, out = text
    blocks = (Continuous(1), Label(['a', 'b']))
    table = showblocks(blocks, [(np.array([1.0]), 'a'), (np.array([2.0]), 'b')], backend=backend,
                       names=['value', 'class'])
    assert table.row_count == 2
    assert 'value' in out.getvalue() and 'class' in out.getvalue()


def test_showplots_grid():
    fig = ShowPlots(size=(2, 2)).showblocks((Continuous(2), Label(['a', 'b'])),
                                            [(np.array([1.0, 2.0]), 'a')] * 3)
    assert len(fig.axes) == 6
    assert fig.axes[0].get_title() == 'Continuous'


def test_default_backend(monkeypatch):
    monkeypatch.delenv('FASTBLOCKS_SHOW_BACKEND', raising=False)
    assert isinstance(default_showbackend(), ShowText)
    monkeypatch.setenv('FASTBLOCKS_SHOW_BACKEND', 'plots')
    assert isinstance(default_showbackend(), ShowPlots)
    monkeypatch.setenv('FASTBLOCKS_SHOW_BACKEND', 'html')
    with pytest.raises(ValueError):
        default_showbackend()


def test_showsamples(task, data, text):
    backend, out = text
    samples = [(data[0][i], data[1][i]) for i in range(3)]
    assert showsamples(task, samples, backend=backend).row_count == 3
    assert showsample(task, samples[0], backend=backend).row_count == 1


def test_showencoded_and_batch(task, data, text):
    backend, out = text
    batch = makebatch(task, data, idxs=range(5))
    assert showbatch(task, batch, backend=backend).row_count == 5
    encoded = (batch[0][0], batch[1][0])
    assert showencodedsample(task, encoded, backend=backend).row_count == 1


def test_showoutputs_with_explicit_outputs(task, data, model, text):
    backend, out = text
    batch = makebatch(task, data, idxs=range(4))
    ypreds = model(batch[0])
    table = showoutputbatch(task, batch, ypreds, backend=backend)
    assert table.row_count == 4
    assert 'prediction' in out.getvalue()
    with pytest.raises(ValueError):
        showoutputs(task, [(batch[0][0], batch[1][0])], [ypreds[0], ypreds[1]], backend=backend)


def test_showoutputs_with_learner(task, data, model):
    learner = tasklearner(task, data, model=model, batchsize=4, usedefaultcallbacks=False,
                          rng=np.random.default_rng(0))
    fig = showoutputs(task, learner, n=3, backend=ShowPlots())
    assert len(fig.axes) == 9
    assert [ax.get_title() for ax in fig.axes[:3]] == ['input', 'target', 'prediction']


def test_showoutputs_without_validation_samples(task, model, text):
    backend, out = text
    xs = np.array([[1.0, 1.0], [-1.0, -1.0]], dtype=np.float32)
    learner = tasklearner(task, (xs, ['b', 'a']), model=model, batchsize=4, usedefaultcallbacks=False,
                          rng=np.random.default_rng(0))
    assert showoutputs(task, learner, backend=backend).row_count == 2


def test_showpredictions(task, data, model, text):
    backend, out = text
    assert showpredictions(task, model, list(data[0][:3]), backend=backend).row_count == 3
    assert showprediction(task, model, data[0][0], backend=backend).row_count == 1


def test_plotlrfind():
    result = LRFinderResult([1e-4, 1e-3, 1e-2, 1e-1], [1.0, 0.8, 0.5, 2.0])
    ax = plotlrfind(result)
    assert ax.get_xscale() == 'log'
    assert len(ax.collections) == 2
