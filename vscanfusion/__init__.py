"""Virtual scans from lidar point clouds, beam clustering, camera fusion and path tracking."""

__version__ = "0.1.0"