"""Fusing Velodyne points, virtual scans and detections with a camera image."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from .fastvirtualscan import PI
from .projection import CameraModel
from .virtualscan import VirtualScanData

Pixel = tuple[int, int]


@dataclass(frozen=True)
class Rect:
    """An axis-aligned pixel rectangle."""

    x: int
    y: int
    width: int
    height: int


def _pixel(u: float, v: float) -> Pixel:
    return int(u + 0.5), int(v + 0.5)


def fuse_velodyne(
    camera: CameraModel,
    points,
    velodyne_extrinsic=None,
    min_range: float = 0.0,
    max_range: float = 100.0,
) -> dict[Pixel, float]:
    """Map each image pixel hit by a point to the nearest depth seen there.

    The result is ordered by pixel (x first, then y).
    """
    if velodyne_extrinsic is None:
        velodyne_extrinsic = np.eye(4)
    arr = np.asarray(points, dtype=np.float64)
    if arr.size == 0:
        return {}
    camera_points = camera.to_camera_frame(arr, velodyne_extrinsic)
    ranges: dict[Pixel, float] = {}
    for row in camera_points:
        depth = float(row[2])
        if not (min_range <= depth <= max_range) or depth == 0:
            continue
        u, v = camera.project(row)
        if not camera.in_image(u, v):
            continue
        key = _pixel(u, v)
        if key not in ranges or ranges[key] > depth:
            ranges[key] = depth
    return dict(sorted(ranges.items()))


def fuse_virtual_scan(
    camera: CameraModel,
    data: VirtualScanData,
    min_range: float = 0.0,
    max_range: float = 100.0,
) -> dict[int, list[tuple[Pixel, Pixel]]]:
    """Project each beam's lower and upper point into the image as a stixel.

    Returns, per cluster label in ascending order, the (bottom, top) pixel pairs
    in beam order.
    """
    n = len(data.virtualscan)
    if len(data.minheights) != n or len(data.maxheights) != n:
        raise ValueError("heights must have one entry per beam")
    if len(data.labels) != n:
        raise ValueError("labels must have one entry per beam")
    if n == 0:
        return {}

    density = 2 * PI / n
    ranges = np.asarray(data.virtualscan, dtype=np.float64)
    theta = np.arange(n) * density - PI
    xs = ranges * np.cos(theta)
    ys = ranges * np.sin(theta)
    scan_points = np.ones((2 * n, 4), dtype=np.float64)
    scan_points[0::2, 0] = xs
    scan_points[1::2, 0] = xs
    scan_points[0::2, 1] = ys
    scan_points[1::2, 1] = ys
    scan_points[0::2, 2] = data.minheights
    scan_points[1::2, 2] = data.maxheights
    camera_points = camera.to_camera_frame(scan_points, data.extrinsic)

    stixels: dict[int, list[tuple[Pixel, Pixel]]] = {}
    pending = False
    bottom: Pixel = (0, 0)
    for i, row in enumerate(camera_points):
        depth = float(row[2])
        if not (min_range <= depth <= max_range) or depth == 0:
            continue
        u, v = camera.project(row)
        if not camera.in_image(u, v):
            continue
        if i % 2 == 0:
            pending = True
            bottom = _pixel(u, v)
        elif pending:
            pending = False
            stixels.setdefault(data.labels[i // 2], []).append((bottom, _pixel(u, v)))
    return dict(sorted(stixels.items()))


def _half(value: int) -> int:
    return int(value / 2)


def rotate_detections(
    detections,
    original_size: tuple[int, int],
    image_size: tuple[int, int],
    rotation: float = 0.0,
    scale: float = 1.0,
) -> list[Rect]:
    """Carry detections on the original image onto the rotated, scaled and padded image.

    Sizes are (width, height); ``rotation`` is in degrees about the original image centre.
    """
    rects = [d if isinstance(d, Rect) else Rect(*d) for d in detections]
    if not rects:
        return []
    original_width, original_height = original_size
    image_width, image_height = image_size
    cx = float(_half(original_width))
    cy = float(_half(original_height))
    angle = math.radians(rotation)
    alpha = scale * math.cos(angle)
    beta = scale * math.sin(angle)
    tx = (1 - alpha) * cx - beta * cy
    ty = beta * cx + (1 - alpha) * cy
    xoffset = _half(image_width - original_width)
    yoffset = _half(image_height - original_height)

    def transform(px: float, py: float) -> tuple[float, float]:
        return alpha * px + beta * py + tx, -beta * px + alpha * py + ty

    result = []
    for rect in rects:
        x1, y1 = transform(rect.x, rect.y)
        x2, y2 = transform(rect.x + rect.width, rect.y + rect.height)
        left, right = (x1, x2) if x1 < x2 else (x2, x1)
        top, bottom = (y1, y2) if y1 < y2 else (y2, y1)
        result.append(
            Rect(
                x=int(left + xoffset),
                y=int(top + yoffset),
                width=int(right - left),
                height=int(bottom - top),
            )
        )
    return result