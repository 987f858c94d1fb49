[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "devsweep"
version = "0.1.0"
description = "Developer housekeeping tools: review and tidy backup copies, find and act on Go package directories, install or compare snippet collections"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "cleanup",
    "diff",
    "backup files",
    "go packages",
    "snippets",
    "developer tools",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
devsweep-cmprm = "devsweep.cmprm_cli:main"
devsweep-godirs = "devsweep.godirs_cli:main"
devsweep-snippets = "devsweep.snippets:main"

[tool.hatch.build.targets.wheel]
packages = ["devsweep"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
