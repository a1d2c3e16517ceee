"""numba kernels for the loops NumPy cannot vectorize."""
from __future__ import annotations
import numpy as np
from numba import njit


@njit
def col2im_accumulate(dcols: np.ndarray, dx_padded: np.ndarray, stride: int) -> np.ndarray:
    """Scatter-add im2col patch gradients back onto the padded input.

    Args:
        dcols: Patch gradients shaped ``(batch, out_h, out_w, kh, kw, c)``
        dx_padded: Zero-initialised ``(batch, h_p, w_p, c)`` buffer, updated in place
        stride: Convolution stride

    Returns:
        ``dx_padded``
    """
    batch, out_h, out_w, kh, kw, c = dcols.shape
    for n in range(batch):
        for i in range(out_h):
            i0 = i * stride
            for j in range(out_w):
                j0 = j * stride
                for a in range(kh):
                    for b in range(kw):
                        for ch in range(c):
                            dx_padded[n, i0 + a, j0 + b, ch] += dcols[n, i, j, a, b, ch]
    return dx_padded
