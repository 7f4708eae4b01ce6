[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "moostools"
version = "0.1.0"
description = "Database scoping and alog log playback tools for MOOS robotics communities"
requires-python = ">=3.10"
dependencies = []
keywords = ["moos", "robotics", "alog", "playback", "logging", "middleware"]
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
test = ["pytest"]

[project.scripts]
moos-playback = "moostools.controller:main"

[tool.hatch.build.targets.wheel]
packages = ["moostools"]

[tool.pytest.ini_options]
addopts = "-ra"
