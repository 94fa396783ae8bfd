"""Virtual scan generation, clustering, publishing messages and globalisation."""

from __future__ import annotations

import dataclasses
import datetime
import math
from collections import deque
from dataclasses import dataclass, field

import numpy as np

from .fastvirtualscan import PI, FastVirtualScan
from .pointcloud import Header, PointCloud2, VelodyneScan

_CLOUD_POINT_STEP = 8 * 4
_RING_FIELD = 5


def _identity() -> np.ndarray:
    return np.eye(4, dtype=np.float64)


@dataclass
class GeneratorParams:
    """Settings for building a virtual scan from a Velodyne scan (angles in degrees)."""

    beamnum: int = 1000
    heightstep: float = 0.3
    slope: float = 30.0
    minfloor: float = -3.0
    maxceiling: float = 3.0
    maxfloor: float = -1.2
    minceiling: float = -0.5
    passheight: float = 2.0
    rotation: float = 3.0
    obstacleminheight: float = 1.0
    maxbackdistance: float = 1.0
    minrange: float = 0.5


@dataclass
class ClusterParams:
    """Settings for grouping neighbouring virtual scan beams into clusters."""

    neighbornum: int = 5
    minpointsnum: int = 10
    xsigma: float = 0.005
    xminsigma: float = 0.1
    ysigma: float = 0.05
    yminsigma: float = 0.1
    threshold: float = 0.08


@dataclass
class VirtualScanData:
    """A virtual scan with per-beam heights and cluster labels."""

    timestamp: datetime.time = datetime.time(0)
    extrinsic: np.ndarray = field(default_factory=_identity)
    cloud: PointCloud2 | None = None
    virtualscan: list[float] = field(default_factory=list)
    minheights: list[float] = field(default_factory=list)
    maxheights: list[float] = field(default_factory=list)
    labels: list[int] = field(default_factory=list)
    clusternum: int = 0
    clusters: dict[int, list[int]] = field(default_factory=dict)

    def copy(self) -> VirtualScanData:
        return dataclasses.replace(self, **_copied_fields(self))


def _copied_fields(data: VirtualScanData) -> dict:
    return {
        "extrinsic": np.array(data.extrinsic, dtype=np.float64, copy=True),
        "virtualscan": list(data.virtualscan),
        "minheights": list(data.minheights),
        "maxheights": list(data.maxheights),
        "labels": list(data.labels),
        "clusters": {label: list(ids) for label, ids in data.clusters.items()},
    }


@dataclass
class GlobalVirtualScan(VirtualScanData):
    """A virtual scan together with the vehicle pose it was taken at."""

    ego_transform: np.ndarray = field(default_factory=_identity)


@dataclass
class LaserScan:
    """A planar laser scan message covering a full turn."""

    header: Header
    angle_min: float
    angle_max: float
    angle_increment: float
    time_increment: float
    scan_time: float
    range_min: float
    range_max: float
    ranges: list[float]
    intensities: list[float]


def generate_virtual_scan(
    scan: VelodyneScan,
    params: GeneratorParams | None = None,
    scanner: FastVirtualScan | None = None,
) -> VirtualScanData:
    """Build a virtual scan from a decoded Velodyne scan."""
    params = params if params is not None else GeneratorParams()
    scanner = scanner if scanner is not None else FastVirtualScan()
    scanner.calculate_virtual_scans(
        scan.xyz,
        params.beamnum,
        params.heightstep,
        params.minfloor,
        params.maxceiling,
        params.obstacleminheight,
        params.maxbackdistance,
        params.rotation * PI / 180.0,
        params.minrange,
    )
    ranges = scanner.get_virtual_scan(
        params.slope * PI / 180.0,
        params.maxfloor,
        params.minceiling,
        params.passheight,
    )
    return VirtualScanData(
        timestamp=scan.timestamp,
        extrinsic=np.array(scan.extrinsic, dtype=np.float64, copy=True),
        cloud=scan.cloud,
        virtualscan=list(ranges),
        minheights=list(scanner.minheights),
        maxheights=list(scanner.maxheights),
        labels=[0] * params.beamnum,
        clusternum=0,
        clusters={},
    )


def _affinity(centre: float, neighbour: float, angle: float, params: ClusterParams) -> float:
    xsigma = max(params.xsigma * centre, params.xminsigma)
    ysigma = max(params.ysigma * centre, params.yminsigma)
    xdis = math.exp(-((neighbour * math.sin(angle)) ** 2) / (2 * xsigma**2))
    ydis = math.exp(-((neighbour * math.cos(angle) - centre) ** 2) / (2 * ysigma**2))
    return xdis * ydis


def cluster_virtual_scan(
    data: VirtualScanData,
    params: ClusterParams | None = None,
    beam_num: int | None = None,
    min_range: float = 0.5,
) -> VirtualScanData:
    """Label beams by region growing over angular neighbours; returns a new scan.

    Clusters smaller than ``params.minpointsnum`` are dropped back to label 0.
    """
    params = params if params is not None else ClusterParams()
    ranges = data.virtualscan
    n = len(ranges)
    beam_num = n if beam_num is None else beam_num
    if beam_num <= 0:
        raise ValueError("beam_num must be positive")
    density = 2 * PI / beam_num

    result = data.copy()
    labels = [0] * n
    clusternum = 0
    offsets = [j for j in range(-params.neighbornum, params.neighbornum + 1) if j != 0]

    for seed, seed_range in enumerate(ranges):
        if not (seed_range > min_range and labels[seed] == 0):
            continue
        clusternum += 1
        labels[seed] = clusternum
        queue = deque([seed])
        records = []
        while queue:
            beam = queue.popleft()
            records.append(beam)
            for offset in offsets:
                neighbour = (beam + offset) % n
                if ranges[neighbour] > 0 and labels[neighbour] == 0:
                    angle = abs(offset * density)
                    if _affinity(ranges[beam], ranges[neighbour], angle, params) > params.threshold:
                        labels[neighbour] = clusternum
                        queue.append(neighbour)
        if len(records) < params.minpointsnum:
            for beam in records:
                labels[beam] = 0
            clusternum -= 1

    clusters: dict[int, list[int]] = {}
    for beam, label in enumerate(labels):
        clusters.setdefault(label, []).append(beam)

    result.labels = labels
    result.clusternum = clusternum
    result.clusters = clusters
    return result


def _header_of(data: VirtualScanData) -> Header:
    if data.cloud is None:
        return Header()
    return dataclasses.replace(data.cloud.header)


def laser_scan_message(data: VirtualScanData) -> LaserScan:
    """A laser scan message holding the virtual scan's ranges."""
    beamnum = len(data.virtualscan)
    if beamnum == 0:
        raise ValueError("virtual scan holds no beams")
    return LaserScan(
        header=_header_of(data),
        angle_min=-PI,
        angle_max=PI,
        angle_increment=2 * PI / beamnum,
        time_increment=0.0,
        scan_time=0.1,
        range_min=0.1,
        range_max=100.0,
        ranges=list(data.virtualscan),
        intensities=[255.0] * beamnum,
    )


def virtual_scan_cloud(data: VirtualScanData) -> PointCloud2:
    """A two-row cloud: for each beam its lower point (ring 0) and upper point (ring 1).

    Every point is eight 32-bit fields: x, y, z, unused, intensity, ring (int32), unused x2.
    """
    beamnum = len(data.virtualscan)
    if beamnum == 0:
        raise ValueError("virtual scan holds no beams")
    if len(data.minheights) != beamnum or len(data.maxheights) != beamnum:
        raise ValueError("heights must have one entry per beam")
    density = 2 * PI / beamnum
    ranges = np.asarray(data.virtualscan, dtype=np.float64)
    theta = np.arange(beamnum) * density - PI

    buf = np.zeros((2 * beamnum, 8), dtype="<f4")
    xs = ranges * np.cos(theta)
    ys = ranges * np.sin(theta)
    buf[0::2, 0] = xs
    buf[1::2, 0] = xs
    buf[0::2, 1] = ys
    buf[1::2, 1] = ys
    buf[0::2, 2] = data.minheights
    buf[1::2, 2] = data.maxheights
    buf[:, 4] = 255.0
    rings = buf.view("<i4")
    rings[0::2, _RING_FIELD] = 0
    rings[1::2, _RING_FIELD] = 1

    return PointCloud2(
        header=_header_of(data),
        height=2,
        width=beamnum,
        point_step=_CLOUD_POINT_STEP,
        data=buf.tobytes(),
    )


def globalize(data: VirtualScanData, ego_transform) -> GlobalVirtualScan:
    """Attach the vehicle pose (a 4x4 transform) to a copy of the virtual scan."""
    transform = np.array(ego_transform, dtype=np.float64, copy=True)
    if transform.shape != (4, 4):
        raise ValueError(f"ego transform must be 4x4, got {transform.shape}")
    values = {f.name: getattr(data, f.name) for f in dataclasses.fields(VirtualScanData)}
    values.update(_copied_fields(data))
    return GlobalVirtualScan(**values, ego_transform=transform)