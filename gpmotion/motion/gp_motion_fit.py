"""
Gaussian-process regularized objective for per-particle motion.

Particles move by velocities drawn from a spatially correlated Gaussian
process. The velocity field is expressed in the leading eigenmodes of the
particle covariance, so the optimizer works with a handful of whitened
coefficients per frame transition instead of one velocity per particle.

Energy:
    E(x) = - sum_{p,f} CC[p][f](pos[p, f] + offset[f])
           + sum_{f,d} |C[f, d]|^2
           + sum_{f,d} eigenvalue[d] * |C[f+1, d] - C[f, d]|^2 / sig_acc^2

The last term is only present when sig_acc_px > 0.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence, Tuple

import numpy as np

from gpmotion.motion import codec
from gpmotion.motion.basis import SpectralBasis, build_spectral_basis
from gpmotion.motion.config import GpMotionFitConfig
from gpmotion.motion.interpolation import BoundaryMode, CorrelationVolume
from gpmotion.motion.kernels import KernelKind
from gpmotion.utils.logger import logger


class GpMotionFit:
    """
    Energy and gradient of a trajectory fit, for an external optimizer.

    All state is fixed at construction; ``energy`` and ``gradient`` are pure
    functions of the parameter vector and may be called concurrently.

    Args:
        correlation: ``correlation[p][f]`` is the 2D correlation map of
            particle p in frame f (rows are y, columns are x).
        sig_vel_px: velocity standard deviation per frame, in pixels.
        sig_div_px: spatial decorrelation length of velocities, in pixels.
        sig_acc_px: acceleration standard deviation; 0 disables the
            acceleration penalty.
        max_dims: upper bound on the number of retained modes.
        positions: (pc, 2) particle reference positions, used for the kernel.
        per_frame_offsets: (fc, 2) shift added to every particle's position
            when its correlation map is sampled.
        threads: number of workers over the particle axis.
        kernel: covariance shape, a KernelKind or its name. ``True`` and
            ``False`` select the exponential and Gaussian kernels.
        boundary: how correlation maps are extended past their edges.
        eigenvalue_rtol: modes with eigenvalue at or below this fraction of
            the largest one are discarded.
    """

    def __init__(
        self,
        correlation: Sequence[Sequence[np.ndarray]],
        sig_vel_px: float,
        sig_div_px: float,
        sig_acc_px: float,
        max_dims: int,
        positions,
        per_frame_offsets,
        threads: int = 1,
        kernel=KernelKind.GAUSSIAN,
        boundary=BoundaryMode.CLAMP,
        eigenvalue_rtol: float = 1e-12,
    ):
        self.kernel = KernelKind.parse(kernel)
        self.sig_vel_px = float(sig_vel_px)
        self.sig_div_px = float(sig_div_px)
        self.sig_acc_px = float(sig_acc_px)
        self.threads = int(threads)

        if self.sig_acc_px < 0.0:
            raise ValueError(
                f"sig_acc_px must be non-negative, got {self.sig_acc_px}")
        if self.threads < 1:
            raise ValueError(f"threads must be at least 1, got {self.threads}")

        self.correlation = CorrelationVolume(correlation, boundary)
        self.pc = self.correlation.particle_count
        self.fc = self.correlation.frame_count

        self.positions = np.array(positions, dtype=np.float64)
        if self.positions.shape != (self.pc, 2):
            raise ValueError(
                f"positions must have shape ({self.pc}, 2), "
                f"got {self.positions.shape}")

        self.per_frame_offsets = np.array(per_frame_offsets, dtype=np.float64)
        if self.per_frame_offsets.shape != (self.fc, 2):
            raise ValueError(
                f"per_frame_offsets must have shape ({self.fc}, 2), "
                f"got {self.per_frame_offsets.shape}")

        self.basis: SpectralBasis = build_spectral_basis(
            self.positions,
            self.sig_vel_px,
            self.sig_div_px,
            max_dims,
            kind=self.kernel,
            eigenvalue_rtol=eigenvalue_rtol,
        )
        self.dc = self.basis.mode_count

        self.positions.setflags(write=False)
        self.per_frame_offsets.setflags(write=False)
        self.basis.loadings.setflags(write=False)
        self.basis.eigenvalues.setflags(write=False)

        self._chunks = [
            chunk for chunk in np.array_split(np.arange(self.pc), self.threads)
            if chunk.size > 0
        ]

        logger.info(
            "GP motion fit: %d particles, %d frames, %d of %d modes kept "
            "(%s kernel, sig_vel=%g px, sig_div=%g px, sig_acc=%g px)",
            self.pc, self.fc, self.dc, min(int(max_dims), self.pc),
            self.kernel.value, self.sig_vel_px, self.sig_div_px,
            self.sig_acc_px)

    @classmethod
    def from_config(
        cls,
        correlation: Sequence[Sequence[np.ndarray]],
        positions,
        per_frame_offsets,
        config: GpMotionFitConfig,
    ) -> "GpMotionFit":
        return cls(
            correlation,
            sig_vel_px=config.sig_vel_px,
            sig_div_px=config.sig_div_px,
            sig_acc_px=config.sig_acc_px,
            max_dims=config.max_dims,
            positions=positions,
            per_frame_offsets=per_frame_offsets,
            threads=config.threads,
            kernel=config.kernel,
            boundary=config.boundary,
            eigenvalue_rtol=config.eigenvalue_rtol,
        )

    @property
    def eigenvalues(self) -> np.ndarray:
        return self.basis.eigenvalues

    @property
    def parameter_count(self) -> int:
        return codec.parameter_count(self.pc, self.fc, self.dc)

    def params_to_pos(self, x) -> np.ndarray:
        """Positions of every particle in every frame, shape (pc, fc, 2)."""
        return codec.params_to_pos(x, self.basis.loadings, self.fc)

    def pos_to_params(self, pos) -> np.ndarray:
        """Parameter vector reproducing ``pos`` as closely as the basis allows."""
        pos = np.asarray(pos, dtype=np.float64)
        if pos.shape != (self.pc, self.fc, 2):
            raise ValueError(
                f"positions must have shape ({self.pc}, {self.fc}, 2), "
                f"got {pos.shape}")
        return codec.pos_to_params(pos, self.basis.loadings,
                                   self.basis.eigenvalues)

    def _fan_out(self, work: Callable[[np.ndarray], object]) -> List[object]:
        """Run ``work`` on each particle chunk; results in chunk order."""
        if len(self._chunks) == 1:
            return [work(self._chunks[0])]
        with ThreadPoolExecutor(max_workers=len(self._chunks)) as executor:
            return list(executor.map(work, self._chunks))

    def _sample_coords(self, pos: np.ndarray, p: int) -> np.ndarray:
        return pos[p] + self.per_frame_offsets

    def correlation_energy(self, pos: np.ndarray) -> float:
        """Negative correlation summed over all particles and frames."""

        def partial_sum(particles: np.ndarray) -> float:
            e = 0.0
            for p in particles:
                e -= float(np.sum(self.correlation.values(
                    p, self._sample_coords(pos, p))))
            return e

        total = 0.0
        for e in self._fan_out(partial_sum):
            total += e
        return total

    def correlation_gradients(self, pos: np.ndarray) -> np.ndarray:
        """Correlation gradients w.r.t. each sampled position, (pc, fc, 2)."""
        grads = np.zeros((self.pc, self.fc, 2), dtype=np.float64)

        def fill(particles: np.ndarray) -> None:
            for p in particles:
                grads[p] = self.correlation.gradients(
                    p, self._sample_coords(pos, p))

        self._fan_out(fill)
        return grads

    def energy(self, x) -> float:
        pos = self.params_to_pos(x)
        _, coeffs = codec.split_params(x, self.pc, self.fc, self.dc)

        e_tot = self.correlation_energy(pos)
        e_tot += float(np.sum(coeffs * coeffs))

        if self.sig_acc_px > 0.0 and self.fc > 2:
            dcoeffs = np.diff(coeffs, axis=0)
            e_tot += float(np.sum(
                self.eigenvalues[None, :, None] * dcoeffs * dcoeffs
            )) / (self.sig_acc_px * self.sig_acc_px)

        logger.debug("energy %.10g", e_tot)
        return e_tot

    def gradient(self, x) -> np.ndarray:
        pos = self.params_to_pos(x)
        _, coeffs = codec.split_params(x, self.pc, self.fc, self.dc)
        ccg = self.correlation_gradients(pos)

        grad = np.zeros(self.parameter_count, dtype=np.float64)
        grad_start, grad_coeffs = codec.split_params(
            grad, self.pc, self.fc, self.dc)

        # every frame position moves one-to-one with the frame-0 position
        grad_start -= ccg.sum(axis=1)

        # adjoint of the cumulative sum: transition f moves frames f+1..fc-1
        loadings = self.basis.loadings
        carry = np.zeros((self.pc, 2), dtype=np.float64)
        for f in range(self.fc - 2, -1, -1):
            carry += ccg[:, f + 1]
            grad_coeffs[f] -= loadings.T @ carry

        grad_coeffs += 2.0 * coeffs

        if self.sig_acc_px > 0.0 and self.fc > 2:
            sa2 = self.sig_acc_px * self.sig_acc_px
            dcoeffs = np.diff(coeffs, axis=0)
            g_acc = 2.0 * self.eigenvalues[None, :, None] * dcoeffs / sa2
            grad_coeffs[:-1] -= g_acc
            grad_coeffs[1:] += g_acc

        return grad

    def energy_and_gradient(self, x) -> Tuple[float, np.ndarray]:
        """Both at once, in the ``scipy.optimize.minimize(jac=True)`` form."""
        return self.energy(x), self.gradient(x)
