[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "famptools"
version = "0.1.0"
description = "Host-side tools for a small x86 boot protocol: boot.yaml parsing, memory stamps, partition headers and disk image assembly"
requires-python = ">=3.10"
dependencies = []
keywords = ["bootloader", "mbr", "disk-image", "memory-stamp", "partition", "osdev"]
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
    "Topic :: System :: Boot",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
famp-stamp = "famptools.memory_stamp:main"
famp-config = "famptools.configure:main"
famp-fdi = "famptools.format_image:main"

[tool.hatch.build.targets.wheel]
packages = ["famptools"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
