"""Regions of the virtual scan seen by image detections, and tracker corners in the image."""

from __future__ import annotations

import math

import numpy as np

from .fastvirtualscan import PI
from .fusion import Rect
from .projection import CameraModel
from .virtualscan import VirtualScanData


def _as_rect(detection) -> Rect:
    return detection if isinstance(detection, Rect) else Rect(*detection)


def _rect_contains(rect: Rect, px: int, py: int) -> bool:
    """Whether a pixel lies on or inside a rectangle's border (edges included)."""
    left, right = rect.x, rect.x + rect.width - 1
    if right < left - 1:
        left, right = right, left
    top, bottom = rect.y, rect.y + rect.height - 1
    if bottom < top - 1:
        top, bottom = bottom, top
    return left <= px <= right and top <= py <= bottom


def _beam_pixels(
    data: VirtualScanData, camera: CameraModel, min_range: float, max_range: float
) -> list[tuple[int, int] | None]:
    """The image pixel of every beam's mid-height point, or None where it is not seen."""
    n = len(data.virtualscan)
    if len(data.minheights) != n or len(data.maxheights) != n:
        raise ValueError("heights must have one entry per beam")
    if n == 0:
        return []
    density = 2 * PI / n
    ranges = np.asarray(data.virtualscan, dtype=np.float64)
    theta = np.arange(n) * density - PI
    points = np.ones((n, 4), dtype=np.float64)
    points[:, 0] = ranges * np.cos(theta)
    points[:, 1] = ranges * np.sin(theta)
    points[:, 2] = (
        np.asarray(data.minheights, dtype=np.float64)
        + np.asarray(data.maxheights, dtype=np.float64)
    ) / 2
    camera_points = camera.to_camera_frame(points, data.extrinsic)

    pixels: list[tuple[int, int] | None] = []
    for row in camera_points:
        depth = float(row[2])
        if not (min_range <= depth <= max_range) or depth == 0:
            pixels.append(None)
            continue
        u, v = camera.project(row)
        if camera.in_image(u, v):
            pixels.append((int(u), int(v)))
        else:
            pixels.append(None)
    return pixels


def virtual_scan_roi(
    data: VirtualScanData,
    camera: CameraModel,
    detections,
    min_range: float = 2.0,
    max_range: float = 60.0,
) -> list[tuple[int, int]]:
    """For each detection, the first and last beam whose projection falls inside it.

    Detections that contain no beam are left out; the rest keep their order.
    """
    pixels = _beam_pixels(data, camera, min_range, max_range)
    regions: list[tuple[int, int]] = []
    for detection in detections:
        rect = _as_rect(detection)
        inside = [
            beam
            for beam, pixel in enumerate(pixels)
            if pixel is not None and _rect_contains(rect, *pixel)
        ]
        if inside:
            regions.append((inside[0], inside[-1]))
    return regions


def project_tracker_corners(
    camera: CameraModel, corners, tracker_extrinsic=None
) -> list[tuple[float, float]]:
    """Project tracker edges, given as consecutive pairs of 3D corners, into the image.

    A pair is kept only when both corners lie more than one unit in front of the
    camera; an unpaired last corner is ignored. Returns the pixel points pairwise.
    """
    if tracker_extrinsic is None:
        tracker_extrinsic = np.eye(4)
    arr = np.asarray(corners, dtype=np.float64)
    if arr.size == 0:
        return []
    camera_points = camera.to_camera_frame(arr, tracker_extrinsic)
    projected: list[tuple[float, float]] = []
    for first, second in zip(camera_points[0::2], camera_points[1::2]):
        if first[2] > 1 and second[2] > 1:
            projected.extend(
                (float(u), float(v))
                for u, v in (camera.project(first), camera.project(second))
            )
    return [p for p in projected if all(math.isfinite(c) for c in p)]