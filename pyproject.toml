[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "etapa"
version = "0.7.0"
description = "Compiler back end for a small teaching language: symbol table, syntax tree, semantic checks, three-address code and x86-64 assembly"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "compiler",
    "three-address code",
    "semantic analysis",
    "symbol table",
    "assembly",
    "x86-64",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["etapa"]

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
