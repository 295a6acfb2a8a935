[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "dedupstore"
version = "0.1.0"
description = "Deduplicating backup store: content-defined chunking, fingerprint index, chunk server and client"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "deduplication",
    "backup",
    "fastcdc",
    "content-defined-chunking",
    "bloom-filter",
    "lru",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Backup",
    "Topic :: System :: Archiving",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
dedupstore-server = "dedupstore.server:main"
dedupstore-client = "dedupstore.client:main"

[tool.setuptools.packages.find]
include = ["dedupstore*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
