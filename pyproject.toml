[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "limitbook"
version = "0.1.0"
description = "A price-time priority limit order book with stop, all-or-none and immediate-or-cancel orders"
requires-python = ">=3.10"
dependencies = [
    "sortedcontainers",
]
keywords = ["order book", "matching engine", "trading", "limit order", "exchange"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.setuptools.packages.find]
include = ["limitbook*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
