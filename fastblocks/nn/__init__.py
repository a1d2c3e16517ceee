"""nn - Minimal NumPy neural-network core used by the learning tasks.

Provides:
- Layers (Dense, Conv2D, MaxPool2D, GlobalAvgPool2D, Activation, Dropout,
  Upsample2D, BatchNorm1D/2D, Embedding, EmbeddingBag) with hand-written backward passes
- Chain container (nested sequential models, weight save/load)
- Optimizers (SGD, Adam) with per-parameter learning-rate scales
- Losses on logits (cross-entropy, binary cross-entropy, mse)
- HDF5 weight I/O via h5py

Constraints: core math is pure numpy; the col2im scatter uses a numba kernel.
"""
import os as _os


def _auto_configure_threads():
    """Set BLAS / OpenMP thread counts to all available CPU cores if user
    hasn't specified them. Must run before NumPy loads heavy backends.

    Environment vars respected (won't override if already set):
    OMP_NUM_THREADS, OPENBLAS_NUM_THREADS, MKL_NUM_THREADS, NUMEXPR_NUM_THREADS.
    Disable by setting NN_DISABLE_AUTO_THREADS=1.
    """
    if _os.environ.get('NN_DISABLE_AUTO_THREADS') == '1':
        return
    cores = _os.cpu_count() or 1
    for var in [
        'OMP_NUM_THREADS', 'OPENBLAS_NUM_THREADS', 'MKL_NUM_THREADS', 'NUMEXPR_NUM_THREADS'
    ]:
        if var not in _os.environ:
            _os.environ[var] = str(cores)


_auto_configure_threads()

from . import layers, losses, optim, model, io  # noqa: E402
from .model import Chain  # noqa: E402
from .layers import (  # noqa: E402
    Layer, Dense, Conv2D, MaxPool2D, GlobalAvgPool2D, Activation, Dropout,
    Upsample2D, BatchNorm1D, BatchNorm2D, Embedding, EmbeddingBag,
)
from .losses import LogitCrossEntropy, LogitBinaryCrossEntropy, MSE  # noqa: E402
from .optim import SGD, Adam  # noqa: E402

__all__ = [
    'layers', 'losses', 'optim', 'model', 'io', 'Chain',
    'Layer', 'Dense', 'Conv2D', 'MaxPool2D', 'GlobalAvgPool2D', 'Activation',
    'Dropout', 'Upsample2D', 'BatchNorm1D', 'BatchNorm2D', 'Embedding', 'EmbeddingBag',
    'LogitCrossEntropy', 'LogitBinaryCrossEntropy', 'MSE', 'SGD', 'Adam',
]
