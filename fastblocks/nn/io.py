"""Saving and loading model weights to HDF5 files or groups via h5py."""
from __future__ import annotations
import numpy as np
import h5py
from typing import Dict, Union

H5Target = Union[str, h5py.Group]


def write_weights(group: h5py.Group, weights: Dict[str, np.ndarray]):
    for k, v in weights.items():
        group.create_dataset(k, data=np.asarray(v))


def read_weights(group: h5py.Group) -> Dict[str, np.ndarray]:
    return {k: group[k][()] for k in group.keys()}


def save_weights_hdf5(path: str, weights: Dict[str, np.ndarray]):
    with h5py.File(path, 'w') as f:
        write_weights(f, weights)


def load_weights_hdf5(path: str) -> Dict[str, np.ndarray]:
    with h5py.File(path, 'r') as f:
        return read_weights(f)
