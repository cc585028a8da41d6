[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "attnmat"
version = "0.1.0"
description = "Integer attention products (Q x K^T) x V with the score rows split across threads or processes, plus multi-head summation"
requires-python = ">=3.10"
dependencies = []
keywords = ["attention", "matrix", "multiplication", "parallel", "multi-head"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
attention = "attnmat.threaded:main"
attention-mp = "attnmat.multiprocess:main"
multi-head-attention = "attnmat.multihead:main"

[tool.hatch.build.targets.wheel]
packages = ["attnmat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
