[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vscanfusion"
version = "0.1.0"
description = "Virtual scans from 3D lidar point clouds, beam clustering, camera fusion and path tracking"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["lidar", "velodyne", "virtual scan", "point cloud", "sensor fusion", "robotics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["vscanfusion"]

[tool.pytest.ini_options]
addopts = "-ra"
