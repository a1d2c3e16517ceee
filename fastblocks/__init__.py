"""fastblocks - Data block API for deep learning on a NumPy core.

Learning tasks are declared from blocks (the kinds of data in a sample)
and encodings (the transformations turning samples into model inputs).
Models, losses, data loaders and visualizations are derived from them.

Quick Start:
    from fastblocks import *

    data, blocks = loaddataset('mnist_png', (Image, Label))
    task = ImageClassificationSingle(blocks, size=(28, 28), C='L')
    learner = tasklearner(task, data, batchsize=64)
    fitonecycle(learner, 3, maxlr=0.01)
    showoutputs(task, learner)
"""
from __future__ import annotations

__version__: str = "0.1.0"

from . import nn  # noqa: E402  (configures BLAS threads first)
from .context import Context, Training, Validation, Inference  # noqa: E402
from .logging_config import setup_logging  # noqa: E402
from .data import (  # noqa: E402
    getobs, numobs, mapobs, filterobs, groupobs, shuffleobs, datasubset, splitobs, DataLoader, collate,
    uncollate,
)
from .datablock import (  # noqa: E402
    Block, WrapperBlock, checkblock, mockblock, blockname, set_mock_seed,
    Encoding, StatefulEncoding, encode, decode, encodedblock, decodedblock, encodedblockfilled,
    decodedblockfilled, setup,
    TaskBlocks, BlockTask, SupervisedTask, getblocks, getencodings, encodesample, encodeinput, encodetarget,
    decodex, decodey, decodeypred, mocksample, mockinput, mockmodel, taskmodel, tasklossfn,
    taskdataset, taskdataloaders, makebatch,
    blockmodel, blockbackbone, blocklossfn, register_blockmodel, register_blockbackbone, register_blocklossfn,
    describetask, describeencodings, checktask_core, testencoding, predict, predictbatch,
    TASK_REGISTRY, findlearningtasks, learningtasks,
)
from .blocks import Label, LabelMulti, Continuous, Named, Many  # noqa: E402
from .encodings import OneHot, OneHotTensor, OneHotTensorMulti, Only  # noqa: E402
from .datasets import (  # noqa: E402
    datasetpath, loadfile, loadfolderdata, TableDataset, loaddataset, finddatasets, listdatasets,
    register_dataset,
)
from .vision import (  # noqa: E402
    Image, Mask, ImageTensor, ProjectiveTransforms, ImagePreprocessing, augs_projection, augs_lighting,
    ImageClassificationSingle, ImageClassificationMulti, ImageSegmentation, ImageClassification,
    ImageFolders, ImageSegmentationFolders, IDXDataset,
)
from .tabular import (  # noqa: E402
    TableRow, EncodedTableRow, TabularPreprocessing, TabularClassificationSingle, TabularRegression,
)
from .text import TextRow, EncodedTextRow, TextPreprocessing, TextClassificationSingle  # noqa: E402
from .training import (  # noqa: E402
    Learner, Callback, Recorder, Metrics, ProgressBar, Scheduler, EarlyStopping, ReduceLROnPlateau,
    ParamGroups, IndexGrouper, DiscriminativeLRs, accuracy, accuracy_thresh,
    fit, fitonecycle, finetune, tasklearner, getbatch, lrfind, savetaskmodel, loadtaskmodel,
)
from .interpretation import (  # noqa: E402
    ShowText, ShowPlots, default_showbackend, showblock, showblocks, showsample, showsamples,
    showencodedsample, showencodedsamples, showbatch, showoutput, showoutputs, showoutputbatch,
    showprediction, showpredictions, plotlrfind,
)

__all__ = [
    # Contexts and logging
    'Context', 'Training', 'Validation', 'Inference', 'setup_logging',
    # Data
    'getobs', 'numobs', 'mapobs', 'filterobs', 'groupobs', 'shuffleobs', 'datasubset', 'splitobs',
    'DataLoader', 'collate', 'uncollate',
    # Blocks and encodings
    'Block', 'WrapperBlock', 'checkblock', 'mockblock', 'blockname', 'set_mock_seed',
    'Encoding', 'StatefulEncoding', 'encode', 'decode', 'encodedblock', 'decodedblock',
    'encodedblockfilled', 'decodedblockfilled', 'setup',
    'Label', 'LabelMulti', 'Continuous', 'Named', 'Many',
    'OneHot', 'OneHotTensor', 'OneHotTensorMulti', 'Only',
    # Tasks
    'TaskBlocks', 'BlockTask', 'SupervisedTask', 'getblocks', 'getencodings', 'encodesample', 'encodeinput',
    'encodetarget', 'decodex', 'decodey', 'decodeypred', 'mocksample', 'mockinput', 'mockmodel', 'taskmodel',
    'tasklossfn', 'taskdataset', 'taskdataloaders', 'makebatch',
    'blockmodel', 'blockbackbone', 'blocklossfn', 'register_blockmodel', 'register_blockbackbone',
    'register_blocklossfn', 'describetask', 'describeencodings', 'checktask_core', 'testencoding',
    'predict', 'predictbatch', 'TASK_REGISTRY', 'findlearningtasks', 'learningtasks',
    # Datasets
    'datasetpath', 'loadfile', 'loadfolderdata', 'TableDataset', 'loaddataset', 'finddatasets',
    'listdatasets', 'register_dataset',
    # Domains
    'Image', 'Mask', 'ImageTensor', 'ProjectiveTransforms', 'ImagePreprocessing', 'augs_projection',
    'augs_lighting', 'ImageClassificationSingle', 'ImageClassificationMulti', 'ImageSegmentation',
    'ImageClassification', 'ImageFolders', 'ImageSegmentationFolders', 'IDXDataset',
    'TableRow', 'EncodedTableRow', 'TabularPreprocessing', 'TabularClassificationSingle', 'TabularRegression',
    'TextRow', 'EncodedTextRow', 'TextPreprocessing', 'TextClassificationSingle',
    # Training
    'Learner', 'Callback', 'Recorder', 'Metrics', 'ProgressBar', 'Scheduler', 'EarlyStopping',
    'ReduceLROnPlateau', 'ParamGroups', 'IndexGrouper', 'DiscriminativeLRs', 'accuracy', 'accuracy_thresh',
    'fit', 'fitonecycle', 'finetune', 'tasklearner', 'getbatch', 'lrfind', 'savetaskmodel', 'loadtaskmodel',
    # Interpretation
    'ShowText', 'ShowPlots', 'default_showbackend', 'showblock', 'showblocks', 'showsample', 'showsamples',
    'showencodedsample', 'showencodedsamples', 'showbatch', 'showoutput', 'showoutputs', 'showoutputbatch',
    'showprediction', 'showpredictions', 'plotlrfind',
    # Submodules
    'nn',
]
