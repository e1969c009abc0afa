[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mainline"
version = "5.4.0"
description = "Building blocks of BitTorrent's Mainline DHT: node ids, routing table, mutable and immutable items, and KRPC messages"
requires-python = ">=3.10"
dependencies = [
    "pynacl",
]
keywords = ["bittorrent", "torrent", "dht", "kademlia", "mainline", "krpc", "bencode"]
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
    "Topic :: Communications :: File Sharing",
    "Topic :: Internet",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["mainline"]

[tool.hatch.build.targets.sdist]
include = [
    "mainline",
    "tests",
    "README.md",
]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
