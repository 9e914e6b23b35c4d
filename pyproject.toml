[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lighthouse_sensors"
version = "0.1.0"
description = "Pulse timing, cycle phase classification and data frame decoding for lighthouse position sensors"
requires-python = ">=3.10"
dependencies = []
keywords = ["lighthouse", "sensors", "tracking", "pulses", "data frame", "timer capture"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["lighthouse_sensors"]

[tool.pytest.ini_options]
addopts = "-ra"
