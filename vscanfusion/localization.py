"""Localisation poses as 4x4 transforms and the path they trace."""

from __future__ import annotations

import numpy as np


def transform_from_pose(translation, quaternion) -> np.ndarray:
    """A 4x4 homogeneous transform from a translation and a quaternion (x, y, z, w).

    The quaternion need not be normalised, but must not be zero.
    """
    t = np.asarray(translation, dtype=np.float64).ravel()
    if t.size != 3:
        raise ValueError("translation needs three components")
    q = np.asarray(quaternion, dtype=np.float64).ravel()
    if q.size != 4:
        raise ValueError("quaternion needs four components (x, y, z, w)")
    d = float(q @ q)
    if d == 0:
        raise ValueError("quaternion must not be zero")
    x, y, z, w = q
    s = 2.0 / d
    xs, ys, zs = x * s, y * s, z * s
    wx, wy, wz = w * xs, w * ys, w * zs
    xx, xy, xz = x * xs, x * ys, x * zs
    yy, yz, zz = y * ys, y * zs, z * zs

    transform = np.eye(4, dtype=np.float64)
    transform[:3, :3] = [
        [1.0 - (yy + zz), xy - wz, xz + wy],
        [xy + wz, 1.0 - (xx + zz), yz - wx],
        [xz - wy, yz + wx, 1.0 - (xx + yy)],
    ]
    transform[:3, 3] = t
    return transform


class PathTracker:
    """Collects the positions of successive poses.

    With ``local`` set, the path is given in the frame of the latest pose.
    """

    def __init__(self, local: bool = True):
        self.local = local
        self._positions: list[tuple[float, float, float, float]] = []
        self._latest: np.ndarray | None = None

    def __len__(self) -> int:
        return len(self._positions)

    def clear(self) -> None:
        self._positions.clear()
        self._latest = None

    def add(self, transform) -> None:
        """Record the position of a 4x4 pose transform."""
        matrix = np.array(transform, dtype=np.float64, copy=True)
        if matrix.shape != (4, 4):
            raise ValueError(f"transform must be 4x4, got {matrix.shape}")
        x, y, z = matrix[:3, 3]
        self._positions.append((float(x), float(y), float(z), 1.0))
        self._latest = matrix

    def positions(self) -> np.ndarray:
        """The recorded positions as homogeneous rows, shape (n, 4)."""
        pose = np.array(self._positions, dtype=np.float64).reshape(-1, 4)
        if not self.local or self._latest is None:
            return pose
        try:
            inverse = np.linalg.inv(self._latest)
        except np.linalg.LinAlgError as exc:
            raise ValueError("latest transform is not invertible") from exc
        return pose @ inverse.T