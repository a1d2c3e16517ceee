"""Reader for gzipped IDX files (MNIST, EMNIST and similar datasets)."""
from __future__ import annotations
import gzip
import os
import struct

import numpy as np

# IDX type codes
_DTYPES = {
    0x08: np.uint8,
    0x09: np.int8,
    0x0B: np.dtype('>i2'),
    0x0C: np.dtype('>i4'),
    0x0D: np.dtype('>f4'),
    0x0E: np.dtype('>f8'),
}


def load_idx_gz(path: str) -> np.ndarray:
    """Read an IDX format gzip file.

    Args:
        path: Path to .gz file

    Returns:
        NumPy array with the data

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file format is invalid
    """
    if not os.path.exists(path):
        raise FileNotFoundError(
            f"Dataset file not found: {path}\n"
            f"Please download the dataset files to the specified directory."
        )
    try:
        with gzip.open(path, 'rb') as f:
            header = f.read(4)
            if len(header) < 4:
                raise ValueError(f"Invalid IDX file: {path} (file too short)")
            zero, data_type, dims = struct.unpack('>HBB', header)
            if zero != 0 or data_type not in _DTYPES:
                raise ValueError(f"Invalid IDX header in {path}")
            shape = tuple(struct.unpack('>I', f.read(4))[0] for _ in range(dims))
            data = np.frombuffer(f.read(), dtype=_DTYPES[data_type])
    except gzip.BadGzipFile:
        raise ValueError(f"Invalid gzip file: {path}") from None
    except (OSError, EOFError, struct.error) as e:
        raise ValueError(f"Error reading {path}: {e}") from e
    expected_size = int(np.prod(shape))
    if data.size != expected_size:
        raise ValueError(f"Data size mismatch in {path}: expected {expected_size}, got {data.size}")
    return data.reshape(shape).astype(data.dtype.newbyteorder('='))
