import threading

import numpy as np
import pytest

from fastblocks.blocks import Continuous, Label
from fastblocks.context import Training, Validation
from fastblocks.data import DataLoader
from fastblocks.datablock import SupervisedTask, taskdataset, tasklossfn
from fastblocks.encodings import OneHot
from fastblocks.nn import Activation, Chain, Dense
from fastblocks.nn.optim import SGD
from fastblocks.training import (
    DiscriminativeLRs, EarlyStopping, IndexGrouper, Learner, LRFinderResult, ParamGroups, ReduceLROnPlateau,
    Scheduler, accuracy, accuracy_thresh, finetune, fitonecycle, getbatch, lrfind, onecycle, tasklearner,
)


def make_data(n=64, seed=0):
    rng = np.random.default_rng(seed)
    xs = rng.standard_normal((n, 2)).astype(np.float32)
    labels = ['b' if a + b > 0 else 'a' for a, b in xs]
    return xs, labels


def make_task():
    return SupervisedTask((Continuous(2), Label(['a', 'b'])), (OneHot(),))


def make_model():
    rng = np.random.default_rng(0)
    model = Chain([Chain([Dense(8, rng=rng), Activation('relu')]), Dense(2, rng=rng)])
    model(np.zeros((1, 2), dtype=np.float32))
    return model


def make_learner(**kwargs):
    kwargs.setdefault('lr', 0.05)
    return tasklearner(make_task(), make_data(), model=make_model(), batchsize=8,
                       rng=np.random.default_rng(0), **kwargs)


def snapshot(layer):
    return {k: v.copy() for k, v in layer.state_dict().items()}


def test_fit_records_history():
    learner = make_learner()
    history = learner.fit(3)
    assert len(history['loss']) == len(history['val_loss']) == len(history['lr']) == 3
    assert len(history['accuracy']) == len(history['val_accuracy']) == 3
    assert history['loss'][-1] < history['loss'][0]
    assert 0.0 <= history['val_accuracy'][-1] <= 1.0


def test_fit_without_validation_data():
    task = make_task()
    train = DataLoader(taskdataset(make_data(), task, Training), 16)
    learner = Learner(make_model(), tasklossfn(task), data=(train, None), metrics=[accuracy], lr=0.05)
    history = learner.fit(2)
    assert len(history['loss']) == len(history['accuracy']) == 2
    assert history['val_loss'] == []


def test_fit_needs_data():
    with pytest.raises(ValueError):
        Learner(make_model(), tasklossfn(make_task())).fit(1)


def test_early_stopping_cancels_fit():
    # never counts as improved after the first epoch
    stopper = EarlyStopping(patience=1, monitor='val_loss', mode='max', min_delta=1e9)
    learner = make_learner(callbacks=[stopper])
    history = learner.fit(10)
    assert len(history['loss']) == 2
    assert learner.training is False


def test_plateau_callbacks_validate_mode():
    with pytest.raises(ValueError):
        EarlyStopping(mode='lowest')


def test_reduce_lr_on_plateau():
    reducer = ReduceLROnPlateau(patience=1, factor=0.5, min_lr=0.004, monitor='val_loss', mode='max', min_delta=1e9)
    learner = make_learner(optimizer=SGD(lr=0.01), callbacks=[reducer])
    learner.fit(3)
    assert learner.optimizer.lr == pytest.approx(0.004)
    assert learner.history['lr'] == pytest.approx([0.01, 0.01, 0.005])


def test_onecycle_schedule():
    schedule = onecycle(1.0, pct_start=0.25, div=10, divfinal=100)
    assert schedule(0.0) == pytest.approx(0.1)
    assert schedule(0.25) == pytest.approx(1.0)
    assert schedule(1.0) == pytest.approx(0.01)
    assert schedule(0.1) < schedule(0.2)
    assert schedule(0.6) > schedule(0.9)


def test_fitonecycle_sets_learning_rates():
    learner = make_learner()
    fitonecycle(learner, 2, maxlr=0.1)
    lrs = learner.recorder.steps['lr']
    assert lrs[0] == pytest.approx(0.1 / 25)
    assert lrs[-1] == pytest.approx(0.1 / 1e5)
    assert max(lrs) <= 0.1 + 1e-12
    assert learner.getcallback(Scheduler) is None


def test_discriminative_lrs_freeze_a_group():
    paramgroups = ParamGroups(IndexGrouper([[0], [1]]))
    learner = make_learner(callbacks=[DiscriminativeLRs(paramgroups, {0: 0.0})])
    backbone, head = snapshot(learner.model[0]), snapshot(learner.model[1])
    learner.fit(1)
    for name, value in learner.model[0].state_dict().items():
        np.testing.assert_array_equal(value, backbone[name])
    assert any(not np.allclose(value, head[name]) for name, value in learner.model[1].state_dict().items())
    assert learner.paramscale is None
    assert paramgroups.getgroup('0.0.W') == 0
    assert paramgroups.getgroup('1.b') == 1


def test_index_grouper_unknown_index():
    with pytest.raises(KeyError):
        IndexGrouper([[0]])('3.W')


def test_finetune_trains_and_cleans_up():
    learner = make_learner()
    finetune(learner, 1, base_lr=0.01, freezeepochs=1)
    assert len(learner.history['loss']) == 2
    assert learner.getcallback(DiscriminativeLRs) is None
    assert learner.getcallback(Scheduler) is None
    assert learner.paramscale is None


def test_lrfind_restores_weights():
    learner = make_learner()
    before = snapshot(learner.model)
    result = lrfind(learner, startlr=1e-5, endlr=10.0, nsteps=20, verbose=False)
    assert 2 <= len(result.lrs) <= 20
    assert len(result.lrs) == len(result.losses)
    assert np.all(np.diff(result.lrs) > 0)
    assert set(result.estimators) == {'steepest', 'minimum'}
    assert learner.optimizer.lr == pytest.approx(0.05)
    for name, value in learner.model.state_dict().items():
        np.testing.assert_array_equal(value, before[name])


def test_lrfind_needs_data():
    with pytest.raises(ValueError):
        lrfind(Learner(make_model(), tasklossfn(make_task())), verbose=False)


def test_lrfinder_estimators():
    result = LRFinderResult([1e-3, 1e-2, 1e-1, 1.0], [1.0, 0.5, 0.4, 2.0])
    assert result.steepest() == pytest.approx(1e-3)
    assert result.minimum() == pytest.approx(1e-2)


def test_accuracy():
    ypred = np.array([[0.1, 0.9], [0.8, 0.2]])
    assert accuracy(ypred, np.array([[0, 1], [0, 1]])) == 0.5
    assert accuracy(ypred, np.array([1, 1])) == 0.5


def test_accuracy_thresh():
    assert accuracy_thresh(np.array([[2.0, -2.0]]), np.array([[1, 0]])) == 1.0
    assert accuracy_thresh(np.array([[2.0, 2.0]]), np.array([[1, 0]])) == 0.5
    assert accuracy_thresh(np.array([[0.9, 0.4]]), np.array([[1, 1]]), sigmoid=False) == 0.5


def test_lrfind_leaves_no_threads_behind():
    learner = make_learner(num_threads=2)
    before = threading.active_count()
    lrfind(learner, nsteps=5, verbose=False)
    assert threading.active_count() == before


def test_learner_configures_optimizer():
    learner = make_learner(optimizer=SGD(lr=0.1), weight_decay=0.01, clip_norm=1.0)
    assert learner.optimizer.weight_decay == 0.01
    assert learner.optimizer.clip_norm == 1.0
    assert make_learner().optimizer.clip_norm is None


def test_getbatch():
    learner = make_learner()
    xs, ys = getbatch(learner)
    assert xs.shape == (13, 2)
    assert ys.shape == (13, 2)
    xs, ys = getbatch(learner, n=4, context=Training)
    assert xs.shape == (4, 2)
    assert ys.shape == (4, 2)


def test_getbatch_falls_back_to_training_data():
    xs = np.random.default_rng(0).standard_normal((2, 2)).astype(np.float32)
    learner = tasklearner(make_task(), (xs, ['a', 'b']), model=make_model(), batchsize=4,
                          rng=np.random.default_rng(0))
    assert len(learner.data[1].data) == 0
    batch_xs, _ = getbatch(learner, context=Validation)
    assert batch_xs.shape == (2, 2)


def test_getbatch_needs_data():
    with pytest.raises(ValueError):
        getbatch(Learner(make_model(), tasklossfn(make_task())))
