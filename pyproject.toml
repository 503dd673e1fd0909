[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wimtools"
version = "0.1.0"
description = "XCA (Xpress Huffman) decompression and parsers for GPT, PE/COFF headers, UEFI device paths and keystrokes"
requires-python = ">=3.10"
dependencies = []
keywords = ["xpress", "xca", "huffman", "decompression", "uefi", "gpt", "pe", "coff", "device-path", "wim"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Compression",
    "Topic :: System :: Boot",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
xca-decompress = "wimtools.xca:main"

[tool.hatch.build.targets.wheel]
packages = ["wimtools"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
