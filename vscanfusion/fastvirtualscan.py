"""Virtual 2D scan built from a 3D point cloud by height-binned beams."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

MAX_VIRTUAL_SCAN = 1e6
PI = 3.141592654


@dataclass
class SimpleVirtualScan:
    """One height cell of one beam."""

    rotid: int
    rotlength: float
    rotheight: float
    length: float
    height: float


def _sort_key(cell: SimpleVirtualScan):
    return (cell.rotlength, -cell.rotid)


class FastVirtualScan:
    """Builds per-beam height cells from points and extracts a virtual scan."""

    def __init__(self):
        self.beamnum = 1000
        self.step = 0.3
        self.minfloor = -3.0
        self.maxceiling = 3.0
        self.rotation = 0.0
        self.minrange = 0.0
        self.svs: list[list[SimpleVirtualScan]] = []
        self.svsback: list[list[SimpleVirtualScan]] = []
        self.minheights: list[float] = []
        self.maxheights: list[float] = []

    @property
    def size(self) -> int:
        return int((self.maxceiling - self.minfloor) / self.step + 0.5)

    def calculate_virtual_scans(
        self,
        points,
        beam_num,
        height_step,
        min_floor,
        max_ceiling,
        obstacle_min_height=1.0,
        max_back_distance=1.0,
        beam_rotation=0.0,
        min_range=0.0,
    ):
        """Bin points (rows of x, y, z, ...) into beams and height cells."""
        if not min_floor < max_ceiling:
            raise ValueError("min_floor must be below max_ceiling")
        if beam_num <= 0:
            raise ValueError("beam_num must be positive")
        if height_step <= 0:
            raise ValueError("height_step must be positive")

        self.beamnum = int(beam_num)
        self.step = float(height_step)
        self.minfloor = float(min_floor)
        self.maxceiling = float(max_ceiling)
        self.rotation = float(beam_rotation)
        self.minrange = float(min_range)
        size = self.size
        if size < 1:
            raise ValueError("height range holds no height cell")

        c = math.cos(self.rotation)
        s = math.sin(self.rotation)
        density = 2 * PI / self.beamnum

        grid = self._bin_points(points, size, c, s, density)

        self.svs = []
        self.svsback = []
        for beam in grid:
            row = []
            for j, rotlength in enumerate(beam):
                rotheight = self.minfloor + (j + 0.5) * self.step
                if rotlength < MAX_VIRTUAL_SCAN:
                    length = rotlength * c + rotheight * s
                    height = -rotlength * s + rotheight * c
                    row.append(SimpleVirtualScan(j, float(rotlength), rotheight, length, height))
                else:
                    row.append(
                        SimpleVirtualScan(j, MAX_VIRTUAL_SCAN, rotheight, MAX_VIRTUAL_SCAN, rotheight)
                    )
            self._fill_gaps(row, obstacle_min_height, max_back_distance, c, s)
            row[-1].rotlength = MAX_VIRTUAL_SCAN
            self.svsback.append(row)
            self.svs.append(sorted(row, key=_sort_key))

    def _bin_points(self, points, size, c, s, density) -> np.ndarray:
        grid = np.full((self.beamnum, size), MAX_VIRTUAL_SCAN, dtype=np.float64)
        arr = np.asarray(points, dtype=np.float64)
        if arr.size == 0:
            return grid
        if arr.ndim != 2 or arr.shape[1] < 3:
            raise ValueError("points must be rows of at least x, y, z")
        arr = arr[np.isfinite(arr[:, :3]).all(axis=1)]
        x, y, z = arr[:, 0], arr[:, 1], arr[:, 2]
        length = np.hypot(x, y)
        rotlength = length * c - z * s
        rotheight = length * s + z * c
        rotid = np.trunc((rotheight - self.minfloor) / self.step + 0.5).astype(np.int64)
        theta = np.arctan2(y, x)
        beamid = np.clip(
            np.trunc((theta + PI) / density).astype(np.int64), 0, self.beamnum - 1
        )
        mask = (rotid >= 0) & (rotid < size) & (length > self.minrange)
        np.minimum.at(grid, (beamid[mask], rotid[mask]), rotlength[mask])
        return grid

    @staticmethod
    def _fill_gaps(row, obstacle_min_height, max_back_distance, c, s):
        """Interpolate empty cells between two occupied cells of a gentle slope."""
        searching = True
        startid = 0
        for j, cell in enumerate(row):
            occupied = cell.rotlength < MAX_VIRTUAL_SCAN
            if searching:
                if occupied:
                    searching = False
                    startid = j
                continue
            if occupied and startid == j - 1:
                startid = j
            elif occupied:
                start = row[startid]
                if (
                    cell.height - start.height < obstacle_min_height
                    and cell.rotlength - start.rotlength > -max_back_distance
                ):
                    delta = (cell.rotlength - start.rotlength) / (j - startid)
                    for k in range(startid + 1, j):
                        gap = row[k]
                        gap.rotlength = cell.rotlength - (j - k) * delta
                        gap.length = gap.rotlength * c + gap.rotheight * s
                        gap.height = -gap.rotlength * s + gap.rotheight * c
                startid = j

    def get_virtual_scan(self, theta, max_floor, min_ceiling, pass_height) -> list[float]:
        """Return the range of the nearest obstacle on every beam (0 where none).

        Also sets ``minheights`` and ``maxheights`` for every beam.
        """
        if len(self.svs) != self.beamnum:
            raise RuntimeError("calculate_virtual_scans must be run first")

        beamnum = self.beamnum
        scan = [MAX_VIRTUAL_SCAN] * beamnum
        minh = [self.minfloor] * beamnum
        maxh = [self.maxceiling] * beamnum
        size = self.size
        tangent = math.tan(theta)
        delta = math.inf if tangent == 0 else abs(self.step / tangent)

        for i in range(beamnum):
            row = self.svs[i]
            back = self.svsback[i]
            candid = 0
            roadfilter = True
            denoise = True
            while candid < size and row[candid].height > min_ceiling:
                candid += 1
            if candid >= size or row[candid].rotlength == MAX_VIRTUAL_SCAN:
                scan[i] = minh[i] = maxh[i] = 0.0
                continue
            if row[candid].height > max_floor:
                scan[i] = row[candid].length
                minh[i] = row[candid].height
                denoise = roadfilter = False
            firstcandid = candid
            for j in range(candid + 1, size):
                cand = row[candid]
                cell = row[j]
                if cell.rotid <= cand.rotid:
                    continue
                startrotid = cand.rotid
                endrotid = cell.rotid
                if cell.rotlength == MAX_VIRTUAL_SCAN:
                    if roadfilter:
                        scan[i] = minh[i] = maxh[i] = 0.0
                    else:
                        maxh[i] = back[startrotid].height
                    break
                adjacent = startrotid + 1 == endrotid
                advance = cell.rotlength - cand.rotlength
                if denoise:
                    if adjacent:
                        if advance >= delta:
                            denoise = False
                            roadfilter = True
                        elif cell.height > max_floor:
                            scan[i] = row[firstcandid].length
                            minh[i] = row[firstcandid].height
                            denoise = roadfilter = False
                    else:
                        if cell.height - cand.height > pass_height:
                            continue
                        if advance <= delta:
                            scan[i] = back[startrotid].length
                            minh[i] = back[startrotid].height
                        else:
                            scan[i] = self._gap_min(cell, back, startrotid, endrotid)
                            minh[i] = back[startrotid + 1].height
                        denoise = roadfilter = False
                elif roadfilter:
                    if adjacent:
                        if advance <= delta:
                            scan[i] = back[startrotid].length
                            minh[i] = back[startrotid].height
                            roadfilter = False
                    else:
                        if cell.height - cand.height > pass_height:
                            continue
                        if advance <= delta:
                            scan[i] = back[startrotid].length
                            minh[i] = back[startrotid].height
                        else:
                            scan[i] = self._gap_min(cell, back, startrotid, endrotid)
                            minh[i] = back[startrotid + 1].height
                        roadfilter = False
                elif advance > delta:
                    maxh[i] = back[startrotid].height
                    break
                candid = j
            if scan[i] <= 0:
                scan[i] = minh[i] = maxh[i] = 0.0

        self.minheights = minh
        self.maxheights = maxh
        return scan

    @staticmethod
    def _gap_min(cell, back, startrotid, endrotid) -> float:
        return min(
            [cell.length] + [back[k].length for k in range(startrotid + 1, endrotid)]
        )