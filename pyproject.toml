[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "compass"
version = "0.1.0"
description = "Context-aware task and planning tracker with a JSON command shell and file-based storage"
requires-python = ">=3.10"
keywords = ["tasks", "planning", "project-management", "context", "decisions"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Scheduling",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
compass = "compass.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["compass"]

[tool.pytest.ini_options]
addopts = "-ra"
