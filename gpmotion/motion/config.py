"""Typed configuration for the GP motion objective."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from gpmotion.configs import DEFAULT_GP_MOTION_FIT_CONFIG
from gpmotion.motion.interpolation import BoundaryMode
from gpmotion.motion.kernels import KernelKind
from gpmotion.utils.config import get_config
from gpmotion.utils.logger import logger

CONFIG_SECTION = "GP_MOTION_FIT"


@dataclass
class GpMotionFitConfig:
    """Hyperparameters shared by every evaluation of one objective."""

    sig_vel_px: float = 1.0
    sig_div_px: float = 200.0
    sig_acc_px: float = 0.0
    max_dims: int = 30
    threads: int = 1
    kernel: KernelKind = KernelKind.GAUSSIAN
    boundary: BoundaryMode = BoundaryMode.CLAMP
    eigenvalue_rtol: float = 1e-12

    def __post_init__(self) -> None:
        self.sig_vel_px = float(self.sig_vel_px)
        self.sig_div_px = float(self.sig_div_px)
        self.sig_acc_px = float(self.sig_acc_px)
        self.max_dims = int(self.max_dims)
        self.threads = int(self.threads)
        self.kernel = KernelKind.parse(self.kernel)
        self.boundary = BoundaryMode.parse(self.boundary)
        self.eigenvalue_rtol = float(self.eigenvalue_rtol)

        if not self.sig_vel_px > 0.0:
            raise ValueError(
                f"sig_vel_px must be positive, got {self.sig_vel_px}")
        if not self.sig_div_px > 0.0:
            raise ValueError(
                f"sig_div_px must be positive, got {self.sig_div_px}")
        if self.sig_acc_px < 0.0:
            raise ValueError(
                f"sig_acc_px must be non-negative, got {self.sig_acc_px}")
        if self.max_dims < 1:
            raise ValueError(f"max_dims must be at least 1, got {self.max_dims}")
        if self.threads < 1:
            raise ValueError(f"threads must be at least 1, got {self.threads}")
        if self.eigenvalue_rtol < 0.0:
            raise ValueError(
                f"eigenvalue_rtol must be non-negative, got {self.eigenvalue_rtol}")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "GpMotionFitConfig":
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (values or {}).items():
            if key not in known:
                logger.warning("Skipping unexpected key in config: %s", key)
                continue
            kwargs[key] = value
        return cls(**kwargs)

    @classmethod
    def from_yaml(
        cls, config_file: Optional[str] = None, **overrides: Any
    ) -> "GpMotionFitConfig":
        """Load the ``GP_MOTION_FIT`` section of a YAML file.

        A file without that section is read as a flat mapping. Keyword
        overrides win over file values.
        """
        parsed = get_config(config_file or DEFAULT_GP_MOTION_FIT_CONFIG)
        values = dict(parsed.get(CONFIG_SECTION, parsed))
        values.update(overrides)
        return cls.from_dict(values)

    def to_dict(self) -> Dict[str, Any]:
        values = asdict(self)
        values["kernel"] = self.kernel.value
        values["boundary"] = self.boundary.value
        return values
