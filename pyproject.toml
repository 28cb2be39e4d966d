[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nodeimage"
version = "0.1.0"
description = "Node-graph image processing: load, adjust, split, blur and save images through a dependency graph"
requires-python = ">=3.10"
keywords = ["image", "node graph", "image processing", "blur", "dataflow"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Editors :: Raster-Based",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["nodeimage"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
