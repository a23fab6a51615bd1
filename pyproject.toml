[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gitoutpost"
version = "0.1.0"
description = "Core library for outpost clones of a git source repository: ref name validation, an outpost registry, source repository inspection and safety checks"
requires-python = ">=3.10"
dependencies = []
keywords = ["git", "clone", "worktree", "registry", "version-control"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control :: Git",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["gitoutpost"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
