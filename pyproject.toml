[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xmrblocks"
version = "0.1.0"
description = "Monero blockchain explorer core: daemon RPC client, mempool and emission monitors, transaction helpers"
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = ["monero", "blockchain", "explorer", "mempool", "rpc", "cryptocurrency"]
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
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    "Topic :: Office/Business :: Financial",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["xmrblocks"]

[tool.hatch.build.targets.sdist]
include = [
    "xmrblocks",
    "tests",
    "pyproject.toml",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
