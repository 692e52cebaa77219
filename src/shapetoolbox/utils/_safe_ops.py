from typing import Tuple
from jaxtyping import Float

import numpy as np


def normalize_with_norm(
    x: Float[np.ndarray, "*batch N"],
    eps: float = 1e-12,
) -> Tuple[Float[np.ndarray, "*batch N"], Float[np.ndarray, "*batch"]]:
    """Normalizes vectors along the last axis and returns the norms.

    Vectors with a norm below ``eps`` come back as zero vectors instead of
    NaNs.
    """
    norm = np.linalg.norm(x, axis=-1, keepdims=True)
    small = norm < eps
    safe_norm = np.where(small, 1.0, norm)
    result_vec = np.where(small, 0.0, x / safe_norm)
    result_norm = norm[..., 0]
    return result_vec, result_norm
