[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "geigerscan"
version = "0.1.0"
description = "Data model, metadata lookup and dependency graph for reports of unsafe-code usage across crate dependencies"
requires-python = ">=3.10"
dependencies = [
    "semver",
]
keywords = [
    "unsafe",
    "audit",
    "dependencies",
    "dependency-graph",
    "safety-report",
    "code-quality",
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
    "Topic :: Software Development :: Quality Assurance",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["geigerscan"]

[tool.hatch.build.targets.sdist]
include = [
    "geigerscan",
    "tests",
    "pyproject.toml",
    "README.md",
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
