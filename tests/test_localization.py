import math

import numpy as np
import pytest

from vscanfusion.localization import PathTracker, transform_from_pose


def test_identity_quaternion_gives_pure_translation():
    t = transform_from_pose((1.0, 2.0, 3.0), (0.0, 0.0, 0.0, 1.0))
    expected = np.eye(4)
    expected[:3, 3] = (1.0, 2.0, 3.0)
    assert np.allclose(t, expected)


@pytest.mark.parametrize(
    "quaternion",
    [(0.1, 0.2, 0.3, 0.9), (0.0, 0.0, math.sqrt(0.5), math.sqrt(0.5)), (1.0, -2.0, 0.5, 3.0)],
)
def test_rotation_is_proper_orthonormal(quaternion):
    r = transform_from_pose((0, 0, 0), quaternion)[:3, :3]
    assert np.allclose(r @ r.T, np.eye(3))
    assert np.linalg.det(r) == pytest.approx(1.0)


def test_rotation_about_z_keeps_z_axis():
    s = math.sqrt(0.5)
    r = transform_from_pose((0, 0, 0), (0.0, 0.0, s, s))[:3, :3]
    assert np.allclose(r @ np.array([0.0, 0.0, 1.0]), [0.0, 0.0, 1.0])


def test_unnormalised_and_negated_quaternion_give_same_rotation():
    q = np.array([0.1, 0.2, 0.3, 0.9])
    base = transform_from_pose((0, 0, 0), q)
    assert np.allclose(transform_from_pose((0, 0, 0), 3 * q), base)
    assert np.allclose(transform_from_pose((0, 0, 0), -q), base)


def test_zero_quaternion_raises():
    with pytest.raises(ValueError):
        transform_from_pose((0, 0, 0), (0, 0, 0, 0))


def test_wrong_translation_size_raises():
    with pytest.raises(ValueError):
        transform_from_pose((0, 0), (0, 0, 0, 1))


def test_global_path_holds_translations():
    tracker = PathTracker(local=False)
    tracker.add(transform_from_pose((1.0, 2.0, 3.0), (0, 0, 0, 1)))
    tracker.add(transform_from_pose((4.0, 5.0, 6.0), (0, 0, 0.3, 0.9)))
    assert np.allclose(tracker.positions(), [[1, 2, 3, 1], [4, 5, 6, 1]])
    assert len(tracker) == 2


def test_local_path_ends_at_origin_and_round_trips():
    tracker = PathTracker()
    poses = [
        transform_from_pose((1.0, 0.0, 0.0), (0, 0, 0, 1)),
        transform_from_pose((3.0, 2.0, 0.5), (0.1, 0.0, 0.4, 0.9)),
    ]
    for pose in poses:
        tracker.add(pose)
    local = tracker.positions()
    assert np.allclose(local[-1], [0, 0, 0, 1])
    world = local @ poses[-1].T
    assert np.allclose(world, [[1, 0, 0, 1], [3, 2, 0.5, 1]])


def test_empty_tracker_and_clear():
    tracker = PathTracker()
    assert tracker.positions().shape == (0, 4)
    tracker.add(np.eye(4))
    tracker.clear()
    assert tracker.positions().shape == (0, 4)


def test_add_rejects_non_square_transform():
    with pytest.raises(ValueError):
        PathTracker().add(np.eye(3))