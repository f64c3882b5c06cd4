[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "imgrelay"
version = "0.1.0"
description = "Relay an image between two processes in fixed-size packets over shared ring queues and verify it with a checksum"
requires-python = ">=3.10"
dependencies = []
keywords = ["ipc", "ring buffer", "shared memory", "mmap", "checksum", "packets", "queue"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
imgrelay-send = "imgrelay.sender:main"
imgrelay-receive = "imgrelay.receiver:main"

[tool.hatch.build.targets.wheel]
packages = ["imgrelay"]

[tool.hatch.build.targets.sdist]
include = ["imgrelay", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]
