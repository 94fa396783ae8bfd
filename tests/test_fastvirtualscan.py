import math

import numpy as np
import pytest

from vscanfusion.fastvirtualscan import (
    MAX_VIRTUAL_SCAN,
    FastVirtualScan,
    SimpleVirtualScan,
)

ANGLE = 0.2  # falls in beam 4 of 8


def _ray(distance, heights):
    return np.array(
        [[distance * math.cos(ANGLE), distance * math.sin(ANGLE), z] for z in heights]
    )


def _calc(points, **kwargs):
    scanner = FastVirtualScan()
    args = dict(
        beam_num=8,
        height_step=0.3,
        min_floor=-3.0,
        max_ceiling=3.0,
        obstacle_min_height=1.0,
        max_back_distance=1.0,
        beam_rotation=0.0,
        min_range=0.0,
    )
    args.update(kwargs)
    scanner.calculate_virtual_scans(points, **args)
    return scanner


def test_defaults():
    scanner = FastVirtualScan()
    assert scanner.beamnum == 1000
    assert scanner.step == 0.3
    assert scanner.minfloor == -3
    assert scanner.maxceiling == 3
    assert scanner.rotation == 0
    assert scanner.minrange == 0


def test_rejects_inverted_height_range():
    with pytest.raises(ValueError):
        _calc(np.empty((0, 3)), min_floor=3.0, max_ceiling=-3.0)


def test_get_before_calculate_fails():
    with pytest.raises(RuntimeError):
        FastVirtualScan().get_virtual_scan(math.radians(30), -1.2, -0.5, 2.0)


def test_rejects_bad_point_shape():
    with pytest.raises(ValueError):
        _calc(np.ones((4, 2)))


def test_empty_cloud_gives_zero_scan():
    scanner = _calc(np.empty((0, 3)))
    scan = scanner.get_virtual_scan(math.radians(30), -1.2, -0.5, 2.0)
    assert scan == [0.0] * 8
    assert scanner.minheights == [0.0] * 8
    assert scanner.maxheights == [0.0] * 8


def test_cell_invariants():
    scanner = _calc(_ray(5.0, np.linspace(-1.5, 1.5, 31)))
    size = scanner.size
    assert len(scanner.svs) == 8
    for row, back in zip(scanner.svs, scanner.svsback):
        assert all(isinstance(cell, SimpleVirtualScan) for cell in row)
        assert [cell.rotid for cell in back] == list(range(size))
        assert back[-1].rotlength == MAX_VIRTUAL_SCAN
        keys = [(cell.rotlength, -cell.rotid) for cell in row]
        assert keys == sorted(keys)
        assert sorted(cell.rotid for cell in row) == list(range(size))


def test_wall_is_seen_on_its_beam_only():
    scanner = _calc(_ray(5.0, np.linspace(-1.5, 1.5, 31)))
    scan = scanner.get_virtual_scan(math.radians(30), -1.2, -0.5, 2.0)
    assert scan[4] == pytest.approx(5.0)
    assert [value for i, value in enumerate(scan) if i != 4] == [0.0] * 7
    assert scanner.minheights[4] == pytest.approx(-0.75)
    assert scanner.minheights[4] <= scanner.maxheights[4]


def test_points_within_min_range_are_ignored():
    scanner = _calc(_ray(5.0, np.linspace(-1.5, 1.5, 31)), min_range=6.0)
    scan = scanner.get_virtual_scan(math.radians(30), -1.2, -0.5, 2.0)
    assert scan == [0.0] * 8


def test_gap_between_cells_is_interpolated():
    points = np.vstack([_ray(5.0, [-1.45]), _ray(6.0, [-0.55])])
    scanner = _calc(points)
    back = scanner.svsback[4]
    assert back[5].rotlength == pytest.approx(5.0)
    assert back[8].rotlength == pytest.approx(6.0)
    assert 5.0 < back[6].rotlength < back[7].rotlength < 6.0


def test_gap_not_filled_across_obstacle():
    points = np.vstack([_ray(5.0, [-1.45]), _ray(6.0, [-0.55])])
    scanner = _calc(points, obstacle_min_height=0.5)
    back = scanner.svsback[4]
    assert back[6].rotlength == MAX_VIRTUAL_SCAN
    assert back[7].rotlength == MAX_VIRTUAL_SCAN


def test_nearest_point_wins_in_a_cell():
    points = np.vstack([_ray(8.0, [-1.45]), _ray(5.0, [-1.45]), _ray(7.0, [-1.45])])
    scanner = _calc(points)
    assert scanner.svsback[4][5].rotlength == pytest.approx(5.0)