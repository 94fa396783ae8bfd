"""Point cloud messages and decoding of Velodyne scans into XYZI points."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field

import numpy as np

_SECONDS_PER_DAY = 24 * 60 * 60
_MSECS_PER_DAY = _SECONDS_PER_DAY * 1000


def stamp_to_time(sec: int, nsec: int) -> datetime.time:
    """Convert a message stamp to the time of day it falls on, to the millisecond."""
    if sec < 0 or nsec < 0:
        raise ValueError("stamp fields must be non-negative")
    msec = (sec % _SECONDS_PER_DAY) * 1000 + nsec // 1_000_000
    if msec >= _MSECS_PER_DAY:
        raise ValueError(f"stamp {sec}.{nsec:09d} does not fall within one day")
    seconds, millis = divmod(msec, 1000)
    minutes, second = divmod(seconds, 60)
    hour, minute = divmod(minutes, 60)
    return datetime.time(hour, minute, second, millis * 1000)


@dataclass
class Header:
    """Message header: frame, sequence number and stamp."""

    frame_id: str = ""
    seq: int = 0
    stamp_sec: int = 0
    stamp_nsec: int = 0

    @property
    def time(self) -> datetime.time:
        return stamp_to_time(self.stamp_sec, self.stamp_nsec)


@dataclass
class PointCloud2:
    """A packed point cloud whose points start with little-endian float fields."""

    header: Header = field(default_factory=Header)
    height: int = 0
    width: int = 0
    point_step: int = 32
    data: bytes = b""

    @property
    def point_count(self) -> int:
        return self.height * self.width

    def _float_fields(self, count: int) -> np.ndarray:
        """Return the first ``count`` float32 fields of every point, shape (n, count)."""
        n = self.point_count
        need = 4 * count
        if self.point_step < need:
            raise ValueError(
                f"point_step {self.point_step} is too small for {count} float fields"
            )
        total = n * self.point_step
        if len(self.data) < total:
            raise ValueError(
                f"cloud data holds {len(self.data)} bytes, {total} are needed"
            )
        if n == 0:
            return np.empty((0, count), dtype=np.float32)
        raw = np.frombuffer(self.data, dtype=np.uint8, count=total).reshape(
            n, self.point_step
        )
        return raw[:, :need].copy().view("<f4").reshape(n, count).astype(np.float32)

    def xyz(self) -> np.ndarray:
        """The x, y, z coordinates of every point as an (n, 3) float32 array."""
        return self._float_fields(3)


@dataclass
class VelodyneScan:
    """A decoded scan: points as rows of x, y, z, 1, intensity x4."""

    timestamp: datetime.time
    frame_id: str
    seq: int
    height: int
    width: int
    points: np.ndarray
    extrinsic: np.ndarray
    cloud: PointCloud2

    @property
    def xyz(self) -> np.ndarray:
        return self.points[:, :3]

    @property
    def intensity(self) -> np.ndarray:
        return self.points[:, 4]


def decode_velodyne(cloud: PointCloud2, extrinsic=None) -> VelodyneScan:
    """Decode a Velodyne cloud (x, y, z at floats 0-2, intensity at float 4)."""
    if extrinsic is None:
        matrix = np.eye(4, dtype=np.float64)
    else:
        matrix = np.array(extrinsic, dtype=np.float64, copy=True)
        if matrix.shape != (4, 4):
            raise ValueError(f"extrinsic matrix must be 4x4, got {matrix.shape}")

    timestamp = stamp_to_time(cloud.header.stamp_sec, cloud.header.stamp_nsec)
    fields = cloud._float_fields(5)
    points = np.empty((fields.shape[0], 8), dtype=np.float32)
    points[:, :3] = fields[:, :3]
    points[:, 3] = 1.0
    points[:, 4:] = (fields[:, 4] / np.float32(255.0))[:, None]

    return VelodyneScan(
        timestamp=timestamp,
        frame_id=cloud.header.frame_id,
        seq=cloud.header.seq,
        height=cloud.height,
        width=cloud.width,
        points=points,
        extrinsic=matrix,
        cloud=cloud,
    )