from gpmotion.motion.basis import SpectralBasis, build_spectral_basis
from gpmotion.motion.codec import params_to_pos, pos_to_params, parameter_count
from gpmotion.motion.config import GpMotionFitConfig
from gpmotion.motion.gp_motion_fit import GpMotionFit
from gpmotion.motion.interpolation import BoundaryMode, CorrelationVolume, CubicInterpolator
from gpmotion.motion.kernels import KernelKind, covariance_matrix

__all__ = [
    "BoundaryMode",
    "CorrelationVolume",
    "CubicInterpolator",
    "GpMotionFit",
    "GpMotionFitConfig",
    "KernelKind",
    "SpectralBasis",
    "build_spectral_basis",
    "covariance_matrix",
    "parameter_count",
    "params_to_pos",
    "pos_to_params",
]
