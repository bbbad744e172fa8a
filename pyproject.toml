[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "busroute"
version = "0.1.0"
description = "Terminal simulation of a bus route with waiting, bored and rude passengers"
requires-python = ">=3.10"
dependencies = []
keywords = ["simulation", "bus", "concurrency", "threads", "terminal", "curses"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Console :: Curses",
    "Intended Audience :: Education",
    "Natural Language :: Spanish",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: Simulation",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
busroute = "busroute.main:main"

[tool.hatch.build.targets.wheel]
packages = ["busroute"]

[tool.pytest.ini_options]
addopts = "-ra"
