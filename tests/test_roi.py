import numpy as np
import pytest

from vscanfusion.fusion import Rect
from vscanfusion.projection import CameraModel
from vscanfusion.roi import project_tracker_corners, virtual_scan_roi
from vscanfusion.virtualscan import VirtualScanData

# Scanner frame (x forward, y left, z up) to camera frame (x right, y down, z forward).
SCANNER_TO_CAMERA = np.array(
    [
        [0.0, -1.0, 0.0, 0.0],
        [0.0, 0.0, -1.0, 0.0],
        [1.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ]
)


def make_camera():
    return CameraModel(
        camera_matrix=[[100.0, 0.0, 50.0], [0.0, 100.0, 50.0], [0.0, 0.0, 1.0]],
        dist_coeff=[0.0] * 5,
        width=101,
        height=101,
    )


def make_scan(beams, distance=10.0):
    return VirtualScanData(
        extrinsic=SCANNER_TO_CAMERA,
        virtualscan=[distance] * beams,
        minheights=[-1.0] * beams,
        maxheights=[1.0] * beams,
        labels=[0] * beams,
    )


def test_single_forward_beam_found():
    data = make_scan(8)
    regions = virtual_scan_roi(data, make_camera(), [Rect(40, 40, 20, 20)])
    assert regions == [(4, 4)]


def test_detection_without_beams_is_dropped():
    data = make_scan(8)
    regions = virtual_scan_roi(
        data, make_camera(), [Rect(0, 0, 10, 10), Rect(40, 40, 20, 20)]
    )
    assert len(regions) == 1


def test_whole_image_region_is_symmetric_about_forward_beam():
    data = make_scan(360)
    [(start, end)] = virtual_scan_roi(data, make_camera(), [(0, 0, 101, 101)])
    assert start < 180 < end
    assert end - 180 == 180 - start


def test_right_half_holds_only_beams_after_forward():
    data = make_scan(360)
    full = virtual_scan_roi(data, make_camera(), [(0, 0, 101, 101)])[0]
    [(start, end)] = virtual_scan_roi(data, make_camera(), [(51, 0, 50, 101)])
    assert start > 180
    assert end == full[1]


def test_out_of_range_beams_are_ignored():
    data = make_scan(8)
    assert virtual_scan_roi(data, make_camera(), [Rect(0, 0, 101, 101)], min_range=20.0) == []


def test_zero_width_detection_contains_nothing():
    data = make_scan(8)
    assert virtual_scan_roi(data, make_camera(), [Rect(50, 50, 0, 0)]) == []


def test_mismatched_heights_raise():
    data = make_scan(8)
    data.minheights = [0.0] * 3
    with pytest.raises(ValueError):
        virtual_scan_roi(data, make_camera(), [Rect(0, 0, 10, 10)])


def test_tracker_corner_in_front_hits_principal_point():
    camera = make_camera()
    corners = [(10.0, 0.0, 0.0), (10.0, -1.0, 0.0)]
    result = project_tracker_corners(camera, corners, SCANNER_TO_CAMERA)
    assert len(result) == 2
    assert result[0] == pytest.approx((50.0, 50.0))


def test_tracker_corners_match_camera_projection():
    camera = make_camera()
    corners = [(10.0, 0.5, 0.2), (12.0, -1.0, 0.3)]
    result = project_tracker_corners(camera, corners, SCANNER_TO_CAMERA)
    expected = [
        camera.project(p) for p in camera.to_camera_frame(corners, SCANNER_TO_CAMERA)
    ]
    assert result == pytest.approx([tuple(e) for e in expected])


def test_pair_with_corner_behind_is_skipped_and_odd_corner_ignored():
    camera = make_camera()
    corners = [
        (10.0, 0.0, 0.0),
        (-5.0, 0.0, 0.0),
        (10.0, 0.0, 0.0),
        (10.0, 1.0, 0.0),
        (10.0, 2.0, 0.0),
    ]
    result = project_tracker_corners(camera, corners, SCANNER_TO_CAMERA)
    assert len(result) == 2


def test_no_corners_gives_empty_list():
    assert project_tracker_corners(make_camera(), []) == []