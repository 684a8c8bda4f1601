[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "portrelay"
version = "0.1.0"
description = "Server-side pieces for a NAT-traversing reverse proxy: port allocation, control and proxy registries, HTTP plugin hooks and UDP packet forwarding."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "reverse-proxy",
    "nat",
    "tunnel",
    "port-forwarding",
    "port-allocation",
    "udp",
    "plugins",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["portrelay"]

[tool.hatch.build.targets.sdist]
include = ["portrelay", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
