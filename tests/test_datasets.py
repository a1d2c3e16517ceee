import gzip
import struct

import numpy as np
import pandas as pd
import pytest
from PIL import Image as PILImage

from fastblocks.blocks import Continuous, Label
from fastblocks.datasets import (
    TableDataset, datasetpath, finddatasets, grandparentname, isimagefile, listdatasets, load_idx_gz, loaddataset,
    loadfile, loadfolderdata, parentname,
)
from fastblocks.tabular import TableDatasetRecipe, TableRow
from fastblocks.text import TextFolders, TextRow
from fastblocks.vision import IDXDataset, Image, ImageFolders, ImageSegmentationFolders, Mask


def write_png(path, array):
    path.parent.mkdir(parents=True, exist_ok=True)
    PILImage.fromarray(array).save(path)


def write_idx(path, array):
    header = struct.pack('>HBB', 0, 0x08, array.ndim) + b''.join(struct.pack('>I', d) for d in array.shape)
    with gzip.open(path, 'wb') as f:
        f.write(header + array.astype(np.uint8).tobytes())


@pytest.fixture
def imagefolder(tmp_path):
    rng = np.random.default_rng(0)
    for cls in ('cat', 'dog'):
        for i in range(3):
            write_png(tmp_path / 'train' / cls / f'{i}.png', rng.integers(0, 255, (8, 8, 3), dtype=np.uint8))
    (tmp_path / 'train' / 'notes.txt').write_text('not an image')
    return tmp_path


def test_path_helpers():
    assert isimagefile('a/b.JPG')
    assert not isimagefile('a/b.txt')
    assert parentname('data/train/dog/1.png') == 'dog'
    assert grandparentname('data/train/dog/1.png') == 'train'


def test_datasetpath_uses_data_directory(tmp_path, monkeypatch):
    monkeypatch.setenv('FASTBLOCKS_DATADIR', str(tmp_path))
    (tmp_path / 'mnist').mkdir()
    assert datasetpath('mnist') == tmp_path / 'mnist'
    with pytest.raises(FileNotFoundError, match='FASTBLOCKS_DATADIR'):
        datasetpath('missing')


def test_loadfile(tmp_path):
    write_png(tmp_path / 'gray.png', np.zeros((4, 5), dtype=np.uint8))
    assert loadfile(tmp_path / 'gray.png').shape == (4, 5)
    write_png(tmp_path / 'rgba.png', np.zeros((4, 5, 4), dtype=np.uint8))
    assert loadfile(tmp_path / 'rgba.png').shape == (4, 5, 3)
    (tmp_path / 't.txt').write_text('hello', encoding='utf-8')
    assert loadfile(tmp_path / 't.txt') == 'hello'
    pd.DataFrame({'a': [1, 2]}).to_csv(tmp_path / 't.csv', index=False)
    assert loadfile(tmp_path / 't.csv')['a'].tolist() == [1, 2]
    (tmp_path / 'x.bin').write_bytes(b'\0')
    with pytest.raises(ValueError):
        loadfile(tmp_path / 'x.bin')
    with pytest.raises(FileNotFoundError):
        loadfile(tmp_path / 'missing.png')


def test_loadfolderdata(imagefolder):
    files = loadfolderdata(imagefolder, filterfn=isimagefile)
    assert len(files) == 6
    assert files == sorted(files)
    images = loadfolderdata(imagefolder, filterfn=isimagefile, loadfn=loadfile)
    assert images[0].shape == (8, 8, 3)
    with pytest.raises(FileNotFoundError):
        loadfolderdata(imagefolder / 'nope')


def test_load_idx_gz(tmp_path):
    array = np.arange(24, dtype=np.uint8).reshape(2, 3, 4)
    write_idx(tmp_path / 'x.gz', array)
    np.testing.assert_array_equal(load_idx_gz(str(tmp_path / 'x.gz')), array)
    with gzip.open(tmp_path / 'bad.gz', 'wb') as f:
        f.write(b'\x01\x02\x03\x04')
    with pytest.raises(ValueError):
        load_idx_gz(str(tmp_path / 'bad.gz'))
    with pytest.raises(FileNotFoundError):
        load_idx_gz(str(tmp_path / 'missing.gz'))


def test_image_folders_recipe(imagefolder):
    (images, labels), blocks = ImageFolders().load(imagefolder / 'train')
    assert blocks == (Image(2), Label(('cat', 'dog')))
    assert labels == ['cat'] * 3 + ['dog'] * 3
    assert images[4].shape == (8, 8, 3)


def test_idx_recipe(tmp_path):
    write_idx(tmp_path / 'train-images-idx3-ubyte.gz', np.zeros((5, 4, 4), dtype=np.uint8))
    write_idx(tmp_path / 'train-labels-idx1-ubyte.gz', np.array([0, 1, 2, 1, 0], dtype=np.uint8))
    data, blocks = IDXDataset().load(tmp_path)
    assert blocks == (Image(2), Label((0, 1, 2)))
    assert data[1] == [0, 1, 2, 1, 0]
    assert data[0].shape == (5, 4, 4)


def test_segmentation_recipe(tmp_path):
    (tmp_path / 'codes.txt').write_text('road\nsky\ncar\n')
    write_png(tmp_path / 'images' / 'a.png', np.zeros((6, 6, 3), dtype=np.uint8))
    write_png(tmp_path / 'labels' / 'a_P.png', np.full((6, 6), 2, dtype=np.uint8))
    (images, masks), blocks = ImageSegmentationFolders().load(tmp_path)
    assert blocks == (Image(2), Mask(2, (0, 1, 2)))
    assert masks[0].shape == (6, 6)
    assert int(masks[0][0, 0]) == 2


def test_segmentation_recipe_missing_mask(tmp_path):
    (tmp_path / 'codes.txt').write_text('road\n')
    write_png(tmp_path / 'images' / 'a.png', np.zeros((6, 6, 3), dtype=np.uint8))
    (tmp_path / 'labels').mkdir()
    with pytest.raises(FileNotFoundError):
        ImageSegmentationFolders().load(tmp_path)


def test_table_recipe(tmp_path):
    pd.DataFrame({
        'age': [20, 30, 40, 50],
        'job': ['a', 'b', 'a', None],
        'salary': ['<50k', '>=50k', '<50k', '>=50k'],
    }).to_csv(tmp_path / 'data.csv', index=False)
    (rows, targets), (rowblock, target) = TableDatasetRecipe(targetcol='salary').load(tmp_path)
    assert isinstance(rows, TableDataset)
    assert rowblock.catcols == ('job',) and rowblock.contcols == ('age',)
    assert rowblock.categorydict == {'job': ('a', 'b')}
    assert target == Label(('<50k', '>=50k'))
    assert targets[1] == '>=50k'
    (_, values), (_, target) = TableDatasetRecipe(targetcol='age', regression=True).load(tmp_path)
    assert target == Continuous(1)
    assert values[2].tolist() == [40.0]
    with pytest.raises(ValueError):
        TableDatasetRecipe(targetcol='nope').load(tmp_path)


def test_text_recipe(tmp_path):
    for cls, text in (('neg', 'bad movie'), ('pos', 'great movie')):
        folder = tmp_path / 'train' / cls
        folder.mkdir(parents=True)
        (folder / '0.txt').write_text(text)
    (rows, labels), blocks = TextFolders('train').load(tmp_path)
    assert blocks == (TextRow(('text',)), Label(('neg', 'pos')))
    assert rows[1] == {'text': 'great movie'}
    assert labels == ['neg', 'pos']


def test_dataset_registry(imagefolder):
    assert {'mnist', 'mnist_png', 'camvid_tiny', 'adult_sample', 'imdb'} <= set(listdatasets())
    assert [e.name for e in finddatasets((Image, Mask))] == ['camvid_tiny']
    assert all(e.blocktypes == (TableRow, Label) for e in finddatasets(name='adult_sample'))
    data, blocks = loaddataset('mnist_png', (Image, Label), path=imagefolder / 'train')
    assert blocks[1].classes == ('cat', 'dog')
    with pytest.raises(KeyError):
        loaddataset('mnist_png', (Image, Mask))
