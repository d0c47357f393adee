"""
Mapping between the optimizer's flat parameter vector and trajectories.

Layout of ``x`` (length ``2*pc + 2*dc*(fc-1)``):
    x[2*p], x[2*p+1]                  frame-0 position of particle p
    x[2*(pc + dc*f + d)], ... + 1     coefficient (cx, cy) of mode d at
                                      the transition from frame f to f+1
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


def parameter_count(pc: int, fc: int, dc: int) -> int:
    return 2 * pc + 2 * dc * (fc - 1)


def split_params(
    x: np.ndarray, pc: int, fc: int, dc: int
) -> Tuple[np.ndarray, np.ndarray]:
    """Views of ``x`` as frame-0 positions (pc, 2) and coefficients (fc-1, dc, 2)."""
    x = np.asarray(x, dtype=np.float64)
    expected = parameter_count(pc, fc, dc)
    if x.ndim != 1 or x.shape[0] != expected:
        raise ValueError(
            f"parameter vector must have shape ({expected},), got {x.shape}")
    start = x[:2 * pc].reshape(pc, 2)
    coeffs = x[2 * pc:].reshape(fc - 1, dc, 2)
    return start, coeffs


def params_to_pos(x: np.ndarray, loadings: np.ndarray, fc: int) -> np.ndarray:
    """
    Expand a parameter vector into positions of shape (pc, fc, 2).

    The velocity of particle p at transition f is sum_d C[f, d] * loadings[p, d];
    positions are the running sum of velocities from the frame-0 position.
    """
    pc, dc = loadings.shape
    start, coeffs = split_params(x, pc, fc, dc)

    velocities = np.einsum("pd,fdk->pfk", loadings, coeffs)

    pos = np.empty((pc, fc, 2), dtype=np.float64)
    pos[:, 0] = start
    if fc > 1:
        pos[:, 1:] = start[:, None, :] + np.cumsum(velocities, axis=1)
    return pos


def pos_to_params(
    pos: np.ndarray, loadings: np.ndarray, eigenvalues: np.ndarray
) -> np.ndarray:
    """
    Collapse positions (pc, fc, 2) into a parameter vector.

    Each coefficient is the projection of the frame-to-frame displacement on
    the mode's loading column divided by the mode's eigenvalue. This inverts
    params_to_pos exactly for displacements inside the basis span.
    """
    pos = np.asarray(pos, dtype=np.float64)
    pc, dc = loadings.shape
    if pos.ndim != 3 or pos.shape[0] != pc or pos.shape[2] != 2 or pos.shape[1] < 1:
        raise ValueError(
            f"positions must have shape ({pc}, fc, 2), got {pos.shape}")
    fc = pos.shape[1]

    x = np.empty(parameter_count(pc, fc, dc), dtype=np.float64)
    x[:2 * pc] = pos[:, 0].reshape(-1)

    velocities = np.diff(pos, axis=1)
    coeffs = np.einsum("pfk,pd->fdk", velocities, loadings)
    coeffs /= np.asarray(eigenvalues, dtype=np.float64)[None, :, None]
    x[2 * pc:] = coeffs.reshape(-1)
    return x
