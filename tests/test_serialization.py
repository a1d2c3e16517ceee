import numpy as np
import pytest

from fastblocks.blocks import Continuous, Label
from fastblocks.context import Validation
from fastblocks.datablock import SupervisedTask, encodesample, predict
from fastblocks.encodings import OneHot
from fastblocks.nn import Activation, Chain, Dense
from fastblocks.training import loadtaskmodel, savetaskmodel


@pytest.fixture
def task():
    return SupervisedTask((Continuous(2), Label(['a', 'b'])), (OneHot(),))


@pytest.fixture
def model():
    rng = np.random.default_rng(0)
    model = Chain([Chain([Dense(4, rng=rng), Activation('relu')]), Dense(2, rng=rng)])
    model(np.zeros((1, 2), dtype=np.float32))
    return model


def test_roundtrip(tmp_path, task, model):
    path = str(tmp_path / 'model.h5')
    savetaskmodel(path, task, model)
    task2, model2 = loadtaskmodel(path)
    assert task2.blocks == task.blocks
    x, _ = encodesample(task2, Validation, (np.array([0.5, -1.0], dtype=np.float32), 'a'))
    np.testing.assert_allclose(model2(x[None]), model(x[None]), rtol=1e-6)
    assert predict(task2, model2, np.array([0.5, -1.0], dtype=np.float32)) in ('a', 'b')


def test_refuses_to_overwrite(tmp_path, task, model):
    path = str(tmp_path / 'model.h5')
    savetaskmodel(path, task, model)
    with pytest.raises(FileExistsError):
        savetaskmodel(path, task, model)
    savetaskmodel(path, task, model, force=True)


def test_unbuilt_model(tmp_path, task):
    path = str(tmp_path / 'model.h5')
    savetaskmodel(path, task, Chain([Dense(2)]))
    _, model = loadtaskmodel(path)
    assert not model.built
    assert model(np.zeros((3, 5), dtype=np.float32)).shape == (3, 2)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        loadtaskmodel(str(tmp_path / 'missing.h5'))


def test_load_documents_trusted_files_only():
    assert 'trusted source' in ' '.join(loadtaskmodel.__doc__.split())
