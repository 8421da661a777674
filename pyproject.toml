[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chainflow"
version = "0.1.0"
description = "Building blocks for chain-event pipelines: cursors, retries, slot time, event filters and fingerprints"
requires-python = ">=3.10"
dependencies = []
keywords = ["blockchain", "pipeline", "events", "filters", "cardano", "fingerprint", "bech32"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["chainflow"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
