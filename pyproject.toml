[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "glos"
version = "0.2.0"
description = "GLOS file format for GNSS IQ signal recordings: reader, writer, replay pacing helpers and a recorder"
requires-python = ">=3.10"
dependencies = [
    "lz4",
]
keywords = ["gnss", "sdr", "iq", "signal", "recording", "file-format", "lz4"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
    "Topic :: Communications :: Ham Radio",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
glos-recorder = "glos.recorder.cli:main"
glos-demo = "glos.demo:main"

[tool.hatch.build.targets.wheel]
packages = ["glos"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
