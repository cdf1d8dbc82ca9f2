[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "europa"
version = "0.1.0"
description = "Sandbox development node tooling: per-block state key/value records, workspaces and node configuration"
requires-python = ">=3.10"
dependencies = []
keywords = ["sandbox", "blockchain", "state", "workspace", "development-node", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
europa = "europa.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["europa"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
