[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rmdb"
version = "0.1.0"
description = "Storage layer of a small relational database: pages, buffer pool, record files, write-ahead log records, catalogue metadata and SQL syntax tree nodes"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "database",
    "buffer-pool",
    "lru",
    "record-manager",
    "storage-engine",
    "write-ahead-log",
    "sql",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: POSIX",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rmdb"]

[tool.pytest.ini_options]
addopts = "-ra"
