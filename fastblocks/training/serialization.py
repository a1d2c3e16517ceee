"""Saving a task together with a trained model in one HDF5 file.

Layout:
- attribute ``architecture``: JSON model config (see ``Layer.to_config``)
- attribute ``input_shape``: JSON input shape the model was built for
- group ``weights``: one dataset per parameter / buffer
- dataset ``task``: the pickled task
"""
from __future__ import annotations
import json
import logging
import os
import pickle

import h5py
import numpy as np

from ..nn.io import read_weights, write_weights
from ..nn.layers import layer_from_config
from ..nn.model import _jsonable_shape, _shape_from_json

logger = logging.getLogger(__name__)


def savetaskmodel(path: str, task, model, force: bool = False):
    """Write ``task`` and ``model`` to ``path``.

    Raises:
        FileExistsError: If ``path`` exists and ``force`` is not set
    """
    if os.path.exists(path) and not force:
        raise FileExistsError(f"{path} already exists; pass force=True to overwrite it")
    with h5py.File(path, 'w') as f:
        f.attrs['architecture'] = json.dumps(model.to_config())
        f.attrs['input_shape'] = json.dumps(_jsonable_shape(model.input_shape) if model.built else None)
        write_weights(f.create_group('weights'), model.state_dict())
        f.create_dataset('task', data=np.void(pickle.dumps(task)))
    logger.info("Saved task and model to %s", path)


def loadtaskmodel(path: str):
    """Load a task and model written by `savetaskmodel`.

    The task is unpickled, which can run arbitrary code: only load files
    from a trusted source.

    Returns:
        ``(task, model)``
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Model file not found: {path}")
    with h5py.File(path, 'r') as f:
        model = layer_from_config(json.loads(f.attrs['architecture']))
        input_shape = json.loads(f.attrs['input_shape'])
        weights = read_weights(f['weights'])
        task = pickle.loads(f['task'][()].tobytes())
    if input_shape is not None:
        model.build(_shape_from_json(input_shape))
        model.load_state_dict(weights)
    else:
        model._pending_weights = weights
    logger.info("Loaded task and model from %s", path)
    return task, model
