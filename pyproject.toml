[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "trustymodel"
version = "0.1.0"
description = "An executable model of the Trusty IPC system calls, handle tables and an event-driven IPC service, driven by scriptable nondeterminism"
requires-python = ">=3.10"
dependencies = []
keywords = ["trusty", "ipc", "model", "mock", "handle-table", "nondeterminism"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing :: Mocking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["trustymodel"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
