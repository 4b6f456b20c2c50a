[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hpcdrills"
version = "0.1.0"
description = "Small numerical drills from high-performance computing: matrix multiply, row and column sums, Jacobi and Poisson solvers, and message passing between ranks."
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "hpc",
    "numerical",
    "jacobi",
    "poisson",
    "dgemm",
    "reduction",
    "stencil",
    "domain-decomposition",
    "message-passing",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: Scientific/Engineering :: Mathematics",
    "Topic :: Scientific/Engineering :: Physics",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
hpcdrills-dgemm = "hpcdrills.dgemm:main"
hpcdrills-matrix-sums = "hpcdrills.matrix_sums:main"
hpcdrills-poisson2d = "hpcdrills.poisson2d:main"
hpcdrills-ranks = "hpcdrills.ranks:main"
hpcdrills-jacobi = "hpcdrills.jacobi_driver:main"

[tool.hatch.build.targets.wheel]
packages = ["hpcdrills"]

[tool.hatch.build.targets.sdist]
include = [
    "hpcdrills",
    "tests",
    "README.md",
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
