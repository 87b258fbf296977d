[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "aper"
version = "0.1.0"
description = "Bit-level reader and writer for ASN.1 Aligned Packed Encoding Rules (APER) primitives"
requires-python = ">=3.10"
dependencies = []
keywords = ["asn1", "aper", "per", "encoding", "decoding", "bits", "telecom"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["aper"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
