[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pgproto"
version = "0.1.0"
description = "Low-level PostgreSQL wire protocol: frontend messages, authentication, binary value encoding and SQL escaping"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "postgresql",
    "postgres",
    "protocol",
    "wire-protocol",
    "scram",
    "sasl",
    "binary-format",
]
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
    "Topic :: Database",
    "Topic :: Software Development :: Code Generators",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pgproto-codegen = "pgproto.codegen_cli:main"

[tool.hatch.build.targets.wheel]
packages = ["pgproto"]

[tool.hatch.build.targets.sdist]
include = ["pgproto", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
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
