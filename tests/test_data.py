import threading

import numpy as np
import pytest

from fastblocks.data import (
    DataLoader, collate, datasubset, filterobs, getobs, groupobs, mapobs, numobs, shuffleobs, splitobs, uncollate,
)


def test_zipped_containers():
    data = (np.arange(5), ['a', 'b', 'c', 'd', 'e'])
    assert numobs(data) == 5
    assert getobs(data, 2) == (2, 'c')


def test_zipped_containers_of_different_length():
    with pytest.raises(ValueError):
        numobs((np.arange(3), np.arange(4)))


def test_mapobs_with_tuple_of_functions():
    data = mapobs((lambda x: x + 1, lambda x: x * 2), list(range(4)))
    assert len(data) == 4
    assert data[3] == (4, 6)


def test_views_collapse():
    data = list(range(10))
    view = datasubset(datasubset(data, [2, 4, 6, 8]), [1, 3])
    assert view.data is data
    assert [view[i] for i in range(len(view))] == [4, 8]


def test_filter_and_group():
    data = list(range(10))
    evens = filterobs(lambda x: x % 2 == 0, data)
    assert len(evens) == 5
    groups = groupobs(lambda x: x % 3, data)
    assert sorted(groups) == [0, 1, 2]
    assert len(groups[0]) == 4


def test_splitobs_partitions_observations(rng):
    data = list(range(10))
    train, valid = splitobs(data, at=0.7, rng=rng)
    assert len(train) == 7 and len(valid) == 3
    seen = sorted([train[i] for i in range(7)] + [valid[i] for i in range(3)])
    assert seen == data
    assert sorted(shuffleobs(data, rng=rng)[i] for i in range(10)) == data


def test_splitobs_rejects_bad_fraction():
    with pytest.raises(ValueError):
        splitobs(list(range(4)), at=1.0)


def test_collate_and_uncollate():
    samples = [(np.ones(3) * i, i) for i in range(4)]
    xs, ys = collate(samples)
    assert xs.shape == (4, 3)
    assert ys.tolist() == [0, 1, 2, 3]
    back = uncollate((xs, ys))
    assert len(back) == 4
    np.testing.assert_array_equal(back[2][0], np.ones(3) * 2)


@pytest.mark.parametrize('prefetch', [0, 2])
def test_dataloader_yields_every_observation(prefetch):
    data = (np.arange(10, dtype=np.float32)[:, None], np.arange(10))
    loader = DataLoader(data, batchsize=4, shuffle=False, prefetch=prefetch, num_threads=2)
    batches = list(loader)
    assert len(loader) == len(batches) == 3
    assert batches[-1][0].shape == (2, 1)
    assert np.concatenate([b[1] for b in batches]).tolist() == list(range(10))


def test_dataloader_drops_partial_batch():
    loader = DataLoader(list(np.arange(10.0)), batchsize=4, shuffle=True, partial=False,
                        rng=np.random.default_rng(1))
    batches = list(loader)
    assert len(loader) == len(batches) == 2
    assert all(b.shape == (4,) for b in batches)


def test_dataloader_rejects_bad_batchsize():
    with pytest.raises(ValueError):
        DataLoader([1, 2], batchsize=0)


def test_dataloader_custom_collate():
    loader = DataLoader(list(range(6)), batchsize=3, shuffle=False, collate=sum)
    assert list(loader) == [3, 12]


def test_abandoned_iteration_stops_threads():
    loader = DataLoader(list(range(1000)), batchsize=2, prefetch=2, num_threads=2)
    before = threading.active_count()
    for _ in range(5):
        batches = iter(loader)
        next(batches)
        batches.close()
    assert threading.active_count() == before


def test_failing_batch_stops_threads():
    def load(i):
        if i == 3:
            raise RuntimeError("broken observation")
        return i

    loader = DataLoader(mapobs(load, list(range(20))), batchsize=2, shuffle=False, num_threads=2)
    before = threading.active_count()
    with pytest.raises(RuntimeError):
        list(loader)
    assert threading.active_count() == before
