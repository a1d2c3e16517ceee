import numpy as np
import pytest

from fastblocks.blocks import Label
from fastblocks.context import Training, Validation
from fastblocks.datablock import checkblock, checktask_core, decode, encode, encodesample, mockblock, taskmodel
from fastblocks.text import (
    EncodedTextRow, TextClassificationSingle, TextPreprocessing, TextRow, buildvocab, textbackbone, tokenize,
)

TEXTS = [
    {'text': 'A good movie. Really good!'},
    {'text': 'A bad movie, really <br /> bad.'},
    {'text': 'Good actors, bad plot.'},
]


def test_tokenize_lowercases_and_drops_tags():
    assert tokenize('Hello <b>World</b>, again!') == ['hello', 'world', ',', 'again', '!']


def test_buildvocab_frequency_and_limits():
    vocab = buildvocab([row['text'] for row in TEXTS], minfreq=2)
    assert vocab[:2] == ['xxpad', 'xxunk']
    assert {'good', 'bad', 'movie', 'really', 'a', '.', ','} <= set(vocab)
    assert 'plot' not in vocab
    assert len(buildvocab([row['text'] for row in TEXTS], minfreq=1, maxvocab=5)) == 5


def test_textrow_block():
    block = TextRow(('title', 'body'))
    assert checkblock(block, {'title': 'x', 'body': 'y'})
    assert not checkblock(block, {'title': 'x'})
    assert not checkblock(block, 'x')
    assert checkblock(block, mockblock(block))
    with pytest.raises(ValueError):
        TextRow(())


def test_text_preprocessing_pads_and_truncates():
    tfm = TextPreprocessing(['xxpad', 'xxunk', 'good', 'movie'], maxlen=4)
    block = TextRow()
    ids = encode(tfm, Training, block, {'text': 'good movie'})
    assert ids.tolist() == [2, 3, 0, 0]
    ids = encode(tfm, Training, block, {'text': 'a good good good movie'})
    assert ids.tolist() == [1, 2, 2, 2]
    assert checkblock(EncodedTextRow(4, 4), ids)
    assert decode(tfm, Validation, EncodedTextRow(4, 4), np.array([2, 3, 0, 0])) == {'text': 'good movie'}


def test_text_preprocessing_requires_special_tokens():
    with pytest.raises(ValueError):
        TextPreprocessing(['good', 'movie'])


def test_text_classification_task():
    labels = ['pos', 'neg', 'neg']
    task = TextClassificationSingle((TextRow(), Label(['neg', 'pos'])), data=(TEXTS, labels), maxlen=8)
    tfm = task.encodings[0]
    assert task.blocks.x == EncodedTextRow(len(tfm.vocab), 8)
    x, y = encodesample(task, Training, (TEXTS[0], 'pos'))
    assert x.shape == (8,)
    assert y.tolist() == [0, 1]
    model = taskmodel(task)
    assert model(x[None]).shape == (1, 2)
    assert checktask_core(task, sample=(TEXTS[1], 'neg'), model=model)


def test_text_classification_needs_data():
    with pytest.raises(ValueError):
        TextClassificationSingle((TextRow(), Label(['neg', 'pos'])))


def test_textbackbone_without_dropout():
    backbone = textbackbone(10, embdim=4, hidden=3, dropout=0)
    assert len(backbone) == 3
    assert backbone(np.array([[1, 2, 0]])).shape == (1, 3)
