"""Sub-pixel cubic sampling of correlation maps."""

from __future__ import annotations

import enum
from typing import List, Sequence, Union

import numpy as np
from scipy.interpolate import RectBivariateSpline


class BoundaryMode(enum.Enum):
    """How samples outside the image are resolved."""

    CLAMP = "clamp"
    WRAP = "wrap"

    @classmethod
    def parse(cls, value: Union["BoundaryMode", str]) -> "BoundaryMode":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for mode in cls:
            if key in (mode.value, mode.name.lower()):
                return mode
        raise ValueError(
            f"Unknown boundary mode '{value}'. "
            f"Available modes: {', '.join(m.value for m in cls)}"
        )


class CubicInterpolator:
    """
    Interpolating bicubic spline over one 2D image.

    Coordinates follow image conventions: ``x`` indexes columns and ``y``
    indexes rows. Values and gradients come from the same spline, so the
    gradient is the exact derivative of the sampled value.
    """

    def __init__(self, image, boundary: BoundaryMode = BoundaryMode.CLAMP):
        image = np.asarray(image, dtype=np.float64)
        if image.ndim != 2:
            raise ValueError(f"expected a 2D image, got shape {image.shape}")
        h, w = image.shape
        if h < 2 or w < 2:
            raise ValueError(
                f"image must be at least 2x2 pixels, got {h}x{w}")
        if not np.all(np.isfinite(image)):
            raise ValueError("image contains non-finite values")

        self.boundary = BoundaryMode.parse(boundary)
        self.height = h
        self.width = w

        if self.boundary is BoundaryMode.WRAP:
            margin = 3
            image = np.pad(image, margin, mode="wrap")
            rows = np.arange(-margin, h + margin, dtype=np.float64)
            cols = np.arange(-margin, w + margin, dtype=np.float64)
        else:
            rows = np.arange(h, dtype=np.float64)
            cols = np.arange(w, dtype=np.float64)

        self._spline = RectBivariateSpline(
            rows, cols, image,
            kx=min(3, len(rows) - 1),
            ky=min(3, len(cols) - 1),
            s=0,
        )

    def _resolve(self, x, y):
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        if self.boundary is BoundaryMode.WRAP:
            return np.mod(x, self.width), np.mod(y, self.height), None, None
        xc = np.clip(x, 0.0, self.width - 1.0)
        yc = np.clip(y, 0.0, self.height - 1.0)
        # outside the image the clamped sample is constant along that axis
        x_inside = (x >= 0.0) & (x <= self.width - 1.0)
        y_inside = (y >= 0.0) & (y <= self.height - 1.0)
        return xc, yc, x_inside, y_inside

    def value(self, x, y):
        xr, yr, _, _ = self._resolve(x, y)
        return self._spline.ev(yr, xr)

    def gradient(self, x, y) -> np.ndarray:
        """Derivatives (d/dx, d/dy) stacked along the last axis."""
        xr, yr, x_inside, y_inside = self._resolve(x, y)
        gx = self._spline.ev(yr, xr, dx=0, dy=1)
        gy = self._spline.ev(yr, xr, dx=1, dy=0)
        if x_inside is not None:
            gx = np.where(x_inside, gx, 0.0)
            gy = np.where(y_inside, gy, 0.0)
        return np.stack([gx, gy], axis=-1)


class CorrelationVolume:
    """Interpolators for every (particle, frame) correlation map."""

    def __init__(
        self,
        correlation: Sequence[Sequence[np.ndarray]],
        boundary: BoundaryMode = BoundaryMode.CLAMP,
    ):
        if len(correlation) == 0:
            raise ValueError("correlation volume has no particles")
        fc = len(correlation[0])
        if fc == 0:
            raise ValueError("correlation volume has no frames")

        self.boundary = BoundaryMode.parse(boundary)
        self._maps: List[List[CubicInterpolator]] = []
        for p, frames in enumerate(correlation):
            if len(frames) != fc:
                raise ValueError(
                    f"particle {p} has {len(frames)} correlation frames, "
                    f"expected {fc}")
            self._maps.append(
                [CubicInterpolator(img, self.boundary) for img in frames])

    @property
    def particle_count(self) -> int:
        return len(self._maps)

    @property
    def frame_count(self) -> int:
        return len(self._maps[0])

    def values(self, particle: int, coords: np.ndarray) -> np.ndarray:
        """Correlation of one particle at per-frame coordinates (fc, 2)."""
        return np.array([
            float(interp.value(c[0], c[1]))
            for interp, c in zip(self._maps[particle], coords)
        ])

    def gradients(self, particle: int, coords: np.ndarray) -> np.ndarray:
        """Correlation gradients of one particle, shape (fc, 2)."""
        return np.array([
            interp.gradient(c[0], c[1])
            for interp, c in zip(self._maps[particle], coords)
        ]).reshape(-1, 2)
