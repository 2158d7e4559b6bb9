[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ledgerbank"
version = "0.1.0"
description = "A small ledger-style banking service: accounts, balances and atomic fund transfers over a JSON HTTP API, stored in SQLite."
requires-python = ">=3.10"
keywords = ["bank", "ledger", "accounting", "transfers", "sqlite", "json-api"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Office/Business :: Financial :: Accounting",
]
dependencies = [
    "flask",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
ledgerbank = "ledgerbank.server:main"

[tool.hatch.build.targets.wheel]
packages = ["ledgerbank"]

[tool.hatch.build.targets.sdist]
include = ["ledgerbank", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
