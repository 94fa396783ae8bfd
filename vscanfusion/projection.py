"""Pinhole camera with radial and tangential distortion."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


def _identity() -> np.ndarray:
    return np.eye(4, dtype=np.float64)


@dataclass
class CameraModel:
    """Camera intrinsics, distortion (k1, k2, p1, p2, k3), extrinsics and image size."""

    camera_matrix: np.ndarray
    dist_coeff: np.ndarray
    extrinsic: np.ndarray = field(default_factory=_identity)
    width: int = 0
    height: int = 0

    def __post_init__(self):
        self.camera_matrix = np.array(self.camera_matrix, dtype=np.float64, copy=True)
        if self.camera_matrix.shape != (3, 3):
            raise ValueError(f"camera matrix must be 3x3, got {self.camera_matrix.shape}")
        self.dist_coeff = np.array(self.dist_coeff, dtype=np.float64, copy=True).ravel()
        if self.dist_coeff.size < 5:
            raise ValueError("distortion needs at least five coefficients")
        self.extrinsic = np.array(self.extrinsic, dtype=np.float64, copy=True)
        if self.extrinsic.shape != (4, 4):
            raise ValueError(f"extrinsic matrix must be 4x4, got {self.extrinsic.shape}")
        try:
            self._extrinsic_inv = np.linalg.inv(self.extrinsic)
        except np.linalg.LinAlgError as exc:
            raise ValueError("extrinsic matrix is not invertible") from exc
        if self.width < 0 or self.height < 0:
            raise ValueError("image size must be non-negative")

    def to_camera_frame(self, points, extrinsic) -> np.ndarray:
        """Move points given in a sensor frame (with that sensor's extrinsic) into this camera's frame.

        Points are rows of x, y, z (a homogeneous 1 is added) or of x, y, z, w and more,
        of which the first four are used. Returns an (n, 4) array.
        """
        arr = np.asarray(points, dtype=np.float64)
        if arr.ndim == 1:
            arr = arr.reshape(1, -1)
        if arr.ndim != 2:
            raise ValueError("points must be a 2D array of rows")
        if arr.shape[1] == 3:
            arr = np.hstack([arr, np.ones((arr.shape[0], 1))])
        elif arr.shape[1] >= 4:
            arr = arr[:, :4]
        else:
            raise ValueError("points need at least x, y, z")
        sensor = np.asarray(extrinsic, dtype=np.float64)
        if sensor.shape != (4, 4):
            raise ValueError(f"extrinsic matrix must be 4x4, got {sensor.shape}")
        return arr @ sensor.T @ self._extrinsic_inv.T

    def project(self, point) -> tuple[float, float]:
        """Project a point in the camera frame to distorted pixel coordinates."""
        x, y, z = (float(v) for v in point[:3])
        if z == 0:
            raise ValueError("cannot project a point with zero depth")
        k1, k2, p1, p2, k3 = (float(v) for v in self.dist_coeff[:5])
        tx = x / z
        ty = y / z
        r2 = tx * tx + ty * ty
        radial = 1 + k1 * r2 + k2 * r2 * r2 + k3 * r2 * r2 * r2
        dx = tx * radial + 2 * p1 * tx * ty + p2 * (r2 + 2 * tx * tx)
        dy = ty * radial + 2 * p2 * tx * ty + p1 * (r2 + 2 * ty * ty)
        m = self.camera_matrix
        return (m[0, 0] * dx + m[0, 2], m[1, 1] * dy + m[1, 2])

    def in_image(self, x, y) -> bool:
        """Whether pixel coordinates fall inside the image."""
        return 0 <= x <= self.width - 1 and 0 <= y <= self.height - 1