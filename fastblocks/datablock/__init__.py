"""Data block API: blocks, encodings and the tasks combining them."""
from .block import Block, WrapperBlock, checkblock, mockblock, wrapped, blockname, set_mock_seed
from .encoding import (
    Encoding, StatefulEncoding, encode, decode, encodedblock, decodedblock, encodedblockfilled,
    decodedblockfilled, setup,
)
from .task import (
    TaskBlocks, AbstractBlockTask, BlockTask, SupervisedTask, getblocks, getencodings,
    encodesample, encodeinput, encodetarget, decodex, decodey, decodeypred,
    mocksample, mockinput, mockmodel, taskmodel, tasklossfn, TaskDataset, taskdataset, taskdataloaders, makebatch,
)
from .models import (
    blockmodel, blockbackbone, hasblockbackbone, blocklossfn,
    register_blockmodel, register_blockbackbone, register_blocklossfn,
)
from .describe import describetask, describeencodings
from .check import checktask_core, testencoding
from .predict import predict, predictbatch
from .registry import TASK_REGISTRY, findlearningtasks, learningtasks
