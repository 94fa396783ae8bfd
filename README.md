# vscanfusion

Tools that turn a 3D lidar point cloud into a 2D *virtual scan* and group its
beams into clusters. The results can be fused with a camera image and with
localization poses.

## Modules

- **`vscanfusion.pointcloud`**: `Header` and `PointCloud2` hold a packed cloud.
  Every point starts with little-endian float32 fields. `PointCloud2.xyz()`
  returns the coordinates as an `(n, 3)` array. `decode_velodyne(cloud, extrinsic)`
  returns a `VelodyneScan`. Its `points` rows are x, y, z, 1 and the intensity
  (float 4, divided by 255) repeated four times. The scan also holds the 4×4
  extrinsic matrix, which is the identity when none is given.
  `stamp_to_time(sec, nsec)` gives the time of day of a stamp to the millisecond.
  It raises `ValueError` for negative fields.
- **`vscanfusion.fastvirtualscan`**: `FastVirtualScan` works in two steps.
  `calculate_virtual_scans(points, beam_num, height_step, min_floor, max_ceiling, ...)`
  sorts the points into angular beams and height cells and fills gaps along
  gentle slopes. `get_virtual_scan(theta, max_floor, min_ceiling, pass_height)`
  then returns the range of the nearest obstacle on each beam, with 0 where
  there is none. This second step also sets `minheights` and `maxheights`.
  Calling it before `calculate_virtual_scans` raises `RuntimeError`.
- **`vscanfusion.virtualscan`**:
  - `generate_virtual_scan(scan, params, scanner)` builds a `VirtualScanData`
    from a `VelodyneScan`. It uses `GeneratorParams`, whose angles are in degrees.
  - `cluster_virtual_scan(data, params, beam_num, min_range)` labels beams by
    region growing over angular neighbours, using `ClusterParams`. It returns a
    new `VirtualScanData`. Clusters smaller than `minpointsnum` go back to label 0.
  - `laser_scan_message(data)` returns a `LaserScan` that covers −π to π.
  - `virtual_scan_cloud(data)` returns a two-row `PointCloud2`. It holds each
    beam's lower point (ring 0) and upper point (ring 1).
  - `globalize(data, ego_transform)` returns a `GlobalVirtualScan` that carries
    a 4×4 ego pose.
- **`vscanfusion.projection`**: `CameraModel` holds a 3×3 camera matrix,
  distortion coefficients (k1, k2, p1, p2, k3), a 4×4 extrinsic matrix and the
  image size.
  - `to_camera_frame(points, extrinsic)` moves sensor points into the camera frame.
  - `project(point)` gives distorted pixel coordinates.
  - `in_image(x, y)` tests the image bounds.
- **`vscanfusion.fusion`**:
  - `fuse_velodyne(camera, points, velodyne_extrinsic, min_range, max_range)`
    maps each pixel that a point hits to the nearest depth seen there.
  - `fuse_virtual_scan(camera, data, min_range, max_range)` returns stixels, as
    (bottom, top) pixel pairs, for each cluster label.
  - `rotate_detections(detections, original_size, image_size, rotation, scale)`
    carries `Rect` detections on the original image onto the rotated, scaled and
    padded image.
- **`vscanfusion.roi`**:
  - `virtual_scan_roi(data, camera, detections, min_range, max_range)` gives,
    for each detection, the first and last beam whose projection falls inside it.
  - `project_tracker_corners(camera, corners, tracker_extrinsic)` projects pairs
    of 3D corners that lie more than one unit in front of the camera.
- **`vscanfusion.localization`**: `transform_from_pose(translation, quaternion)`
  builds a 4×4 transform. The quaternion is given as x, y, z, w. `PathTracker`
  records pose positions with `add(transform)`. `positions()` returns them as
  homogeneous rows, given in the frame of the latest pose when `local=True`
  (the default).

## Installation

```
pip install .
```

The only runtime dependency is numpy.

## Example

```python
import numpy as np
from vscanfusion.pointcloud import Header, PointCloud2, decode_velodyne
from vscanfusion.virtualscan import (
    ClusterParams, GeneratorParams, cluster_virtual_scan, generate_virtual_scan,
)

records = np.zeros((3, 8), dtype="<f4")
records[:, :3] = [[5.0, 0.0, -1.0], [5.0, 0.1, 0.0], [5.0, -0.1, 1.0]]
records[:, 4] = 100.0
cloud = PointCloud2(
    header=Header(frame_id="velodyne", seq=1, stamp_sec=3600),
    height=1, width=3, point_step=32, data=records.tobytes(),
)

scan = decode_velodyne(cloud, np.eye(4))
params = GeneratorParams()
data = generate_virtual_scan(scan, params)
clustered = cluster_virtual_scan(data, ClusterParams(), params.beamnum, params.minrange)
print(clustered.clusternum, len(clustered.virtualscan))
```

## What it does not do

This is a library of processing steps working on in-memory data. It does not
subscribe to or publish on any message bus. `LaserScan` and `PointCloud2` are
plain data objects. It does not read calibration files, so extrinsic and camera
matrices must be passed in. It has no viewers and does no drawing, and it has
no command-line program.

## Running the tests

```
pip install .[test]
pytest
```