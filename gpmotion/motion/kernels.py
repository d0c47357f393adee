"""Spatial covariance kernels for the particle velocity field."""

from __future__ import annotations

import enum
from typing import Union

import numpy as np


class KernelKind(enum.Enum):
    """Shape of the covariance between two particles' velocities."""

    GAUSSIAN = "gaussian"
    EXPONENTIAL = "exponential"

    @classmethod
    def parse(cls, value: Union["KernelKind", str, bool]) -> "KernelKind":
        """Resolve an enum member, its name/value, or the ``exp_kernel`` flag."""
        if isinstance(value, cls):
            return value
        if isinstance(value, (bool, np.bool_)):
            return cls.EXPONENTIAL if value else cls.GAUSSIAN
        key = str(value).strip().lower()
        for kind in cls:
            if key in (kind.value, kind.name.lower()):
                return kind
        raise ValueError(
            f"Unknown kernel kind '{value}'. "
            f"Available kernels: {', '.join(k.value for k in cls)}"
        )


def squared_distances(positions: np.ndarray) -> np.ndarray:
    """Pairwise squared Euclidean distances between rows of ``positions``."""
    diff = positions[:, None, :] - positions[None, :, :]
    return np.einsum("ijk,ijk->ij", diff, diff)


def covariance_matrix(
    positions: np.ndarray,
    sig_vel_px: float,
    sig_div_px: float,
    kind: KernelKind = KernelKind.GAUSSIAN,
) -> np.ndarray:
    """
    Velocity covariance between all particle pairs.

    Args:
        positions: (pc, 2) reference positions in pixels.
        sig_vel_px: velocity standard deviation, the kernel's amplitude.
        sig_div_px: spatial decorrelation length.
        kind: kernel shape.

    Returns:
        Symmetric (pc, pc) matrix.
    """
    dd = squared_distances(np.asarray(positions, dtype=np.float64))
    sv2 = sig_vel_px * sig_vel_px

    if kind is KernelKind.EXPONENTIAL:
        # exponent in distance units, not squared-length units
        A = sv2 * np.exp(-np.sqrt(dd) / sig_div_px)
    else:
        A = sv2 * np.exp(-0.5 * dd / (sig_div_px * sig_div_px))

    return A
