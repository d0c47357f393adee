from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import scipy.linalg

from gpmotion.motion.kernels import KernelKind, covariance_matrix
from gpmotion.utils.logger import logger


@dataclass(frozen=True)
class SpectralBasis:
    """
    Reduced-rank factor of the particle velocity covariance.

    loadings[:, d] is sqrt(eigenvalues[d]) times the d-th singular vector,
    so loadings @ loadings.T approximates the covariance matrix. Modes are
    ordered by descending eigenvalue.
    """

    loadings: np.ndarray  # (pc, dc)
    eigenvalues: np.ndarray  # (dc,)
    covariance: np.ndarray  # (pc, pc)

    @property
    def particle_count(self) -> int:
        return self.loadings.shape[0]

    @property
    def mode_count(self) -> int:
        return self.loadings.shape[1]

    def reconstruct(self) -> np.ndarray:
        return self.loadings @ self.loadings.T


def _check_positions(positions) -> np.ndarray:
    positions = np.asarray(positions, dtype=np.float64)
    if positions.ndim != 2 or positions.shape[1] != 2:
        raise ValueError(
            f"positions must have shape (pc, 2), got {positions.shape}")
    if positions.shape[0] == 0:
        raise ValueError("at least one particle is required")
    if not np.all(np.isfinite(positions)):
        raise ValueError("particle positions must be finite")
    return positions


def build_spectral_basis(
    positions,
    sig_vel_px: float,
    sig_div_px: float,
    max_dims: int,
    kind: KernelKind = KernelKind.GAUSSIAN,
    eigenvalue_rtol: float = 1e-12,
) -> SpectralBasis:
    """
    Decompose the particle covariance and keep its leading modes.

    At most ``min(max_dims, pc)`` modes are kept. Modes whose eigenvalue is
    not above ``eigenvalue_rtol`` times the largest one are dropped as well,
    so every retained eigenvalue can be divided by.

    Raises:
        ValueError: on empty/malformed positions or non-positive scales.
        RuntimeError: if the decomposition fails.
    """
    positions = _check_positions(positions)
    if not sig_vel_px > 0.0:
        raise ValueError(f"sig_vel_px must be positive, got {sig_vel_px}")
    if not sig_div_px > 0.0:
        raise ValueError(f"sig_div_px must be positive, got {sig_div_px}")
    if int(max_dims) < 1:
        raise ValueError(f"max_dims must be at least 1, got {max_dims}")
    if eigenvalue_rtol < 0.0:
        raise ValueError(
            f"eigenvalue_rtol must be non-negative, got {eigenvalue_rtol}")

    kind = KernelKind.parse(kind)
    pc = positions.shape[0]
    A = covariance_matrix(positions, sig_vel_px, sig_div_px, kind)

    if not np.all(np.isfinite(A)):
        raise RuntimeError(
            "velocity covariance contains non-finite values; "
            "check sig_vel_px and sig_div_px")

    try:
        # A is symmetric PSD: left and right singular vectors coincide
        U, S, _ = scipy.linalg.svd(A)
    except (scipy.linalg.LinAlgError, ValueError) as exc:
        raise RuntimeError(
            f"decomposition of the {pc}x{pc} velocity covariance failed: {exc}"
        ) from exc

    dc = min(int(max_dims), pc)
    keep = S[:dc] > eigenvalue_rtol * S[0]
    if not np.all(keep):
        dropped = int(dc - np.count_nonzero(keep))
        dc = int(np.count_nonzero(keep))
        logger.warning(
            "Dropping %d near-zero covariance modes (rtol=%g); %d modes left",
            dropped, eigenvalue_rtol, dc)
    if dc == 0:
        raise RuntimeError("velocity covariance has no positive eigenvalues")

    eigenvalues = S[:dc].copy()
    loadings = U[:, :dc] * np.sqrt(eigenvalues)[None, :]

    logger.debug("Spectral basis: %d particles, %d modes, top eigenvalue %g",
                 pc, dc, eigenvalues[0])

    return SpectralBasis(
        loadings=loadings,
        eigenvalues=eigenvalues,
        covariance=A,
    )
