import numpy as np
import pandas as pd
import pytest

from fastblocks.blocks import Continuous, Label
from fastblocks.context import Training, Validation
from fastblocks.datablock import checkblock, checktask_core, decode, encode, encodesample, mockblock, setup, taskmodel
from fastblocks.datasets import TableDataset
from fastblocks.nn import Chain
from fastblocks.nn.layers import layer_from_config
from fastblocks.tabular import (
    EncodedTableRow, TableRow, TabularClassificationSingle, TabularModel, TabularPreprocessing, TabularRegression,
    emb_sz_rule,
)


@pytest.fixture
def table():
    return pd.DataFrame({
        'color': ['red', 'blue', 'red', None, 'green', 'blue'],
        'size': [1.0, 2.0, np.nan, 4.0, 5.0, 6.0],
        'weight': [10.0, 10.0, 10.0, 10.0, 10.0, 10.0],
    })


@pytest.fixture
def rowblock():
    return TableRow(('color',), ('size', 'weight'))


def test_tablerow_block(rowblock):
    assert checkblock(rowblock, {'color': 'red', 'size': 1.0, 'weight': None})
    assert not checkblock(rowblock, {'color': 'red'})
    assert not checkblock(rowblock, {'color': 'red', 'size': 'big', 'weight': 1.0})
    block = TableRow(('color',), ('size',), {'color': ['red']})
    assert not checkblock(block, {'color': 'blue', 'size': 1.0})
    assert checkblock(block, mockblock(block))


def test_setup_computes_categories_and_statistics(table, rowblock):
    tfm = setup(TabularPreprocessing, rowblock, TableDataset(table))
    assert tfm.categorydict == {'color': ('blue', 'green', 'red')}
    assert tfm.medians['size'] == 4.0
    filled = np.array([1, 2, 4, 4, 5, 6], dtype=float)
    assert tfm.means['size'] == pytest.approx(filled.mean())
    assert tfm.stds['size'] == pytest.approx(filled.std())
    # constant columns are not scaled
    assert tfm.stds['weight'] == 1.0


def test_setup_keeps_known_categories(table):
    block = TableRow(('color',), ('size',), {'color': ('red', 'blue', 'green', 'purple')})
    tfm = setup(TabularPreprocessing, block, table)
    assert tfm.categorydict['color'] == ('red', 'blue', 'green', 'purple')


def test_setup_rejects_missing_columns(table):
    with pytest.raises(ValueError):
        setup(TabularPreprocessing, TableRow(('shape',), ()), table)


def test_encode_missing_and_unknown_values(table, rowblock):
    tfm = setup(TabularPreprocessing, rowblock, table)
    outblock = tfm.encodedblock(rowblock)
    assert outblock == EncodedTableRow(('color',), ('size', 'weight'), tfm.categorydict)
    assert outblock.cardinalities == (4,)
    cats, conts = encode(tfm, Training, rowblock, {'color': 'red', 'size': np.nan, 'weight': 10.0})
    assert cats.tolist() == [3]
    assert conts[0] == pytest.approx((4.0 - tfm.means['size']) / tfm.stds['size'])
    assert conts[1] == 0.0
    cats, _ = encode(tfm, Training, rowblock, {'color': 'purple', 'size': 1.0, 'weight': 10.0})
    assert cats.tolist() == [0]
    assert checkblock(outblock, (cats, conts))


def test_decode_row(table, rowblock):
    tfm = setup(TabularPreprocessing, rowblock, table)
    outblock = tfm.encodedblock(rowblock)
    row = decode(tfm, Validation, outblock, encode(tfm, Validation, rowblock, table.iloc[1]))
    assert row['color'] == 'blue'
    assert row['size'] == pytest.approx(2.0)
    missing = decode(tfm, Validation, outblock, (np.array([0]), np.zeros(2, dtype=np.float32)))
    assert missing['color'] is None


def test_emb_sz_rule():
    assert emb_sz_rule(2) == 2
    assert emb_sz_rule(10) == 6
    assert emb_sz_rule(10 ** 9) == 600


def test_tabular_model_trains_and_serializes(rng):
    model = Chain([TabularModel([4, 3], 2, layersizes=(8,), rng=rng), Chain([])])
    cats = rng.integers(0, 3, size=(5, 2))
    conts = rng.standard_normal((5, 2)).astype(np.float32)
    out = model((cats, conts), training=True)
    assert out.shape == (5, 8)
    assert model.backward(np.ones_like(out)) is None
    names = [name for name, _, _ in model.named_parameters()]
    assert '0.embeds.0.W' in names and '0.layers.0.W' in names
    clone = layer_from_config(model.to_config())
    clone((cats, conts))
    assert clone.load_state_dict(model.state_dict()) == len(model.state_dict())
    np.testing.assert_allclose(clone((cats, conts)), model((cats, conts)), rtol=1e-5)


def test_tabular_model_checks_embedding_sizes():
    with pytest.raises(ValueError):
        TabularModel([3, 3], 1, embszs=[2])


def test_tabular_classification_task(table, rowblock):
    targets = ['a', 'b', 'a', 'b', 'a', 'b']
    task = TabularClassificationSingle((rowblock, Label(['a', 'b'])), data=(TableDataset(table), targets))
    assert task.blocks.input.categorydict == {'color': ('blue', 'green', 'red')}
    x, y = encodesample(task, Training, (table.iloc[0], 'b'))
    assert x[0].tolist() == [3]
    assert y.tolist() == [0, 1]
    model = taskmodel(task)
    assert model((x[0][None], x[1][None])).shape == (1, 2)
    assert checktask_core(task, sample=(table.iloc[0].to_dict(), 'a'), model=model)


def test_tabular_task_needs_data(rowblock):
    with pytest.raises(ValueError):
        TabularClassificationSingle((rowblock, Label(['a', 'b'])))


def test_tabular_regression_task(table, rowblock):
    targets = [np.array([float(i)], dtype=np.float32) for i in range(6)]
    task = TabularRegression((rowblock, Continuous(1)), data=(TableDataset(table), targets))
    assert task.blocks.y == Continuous(1)
    model = taskmodel(task)
    x, _ = encodesample(task, Validation, (table.iloc[2], targets[2]))
    assert model((x[0][None], x[1][None])).shape == (1, 1)
