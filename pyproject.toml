[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "finops-scaler"
version = "0.1.0"
description = "Schedule-driven scale-down and restore of cluster deployments from FinOps scale policies"
requires-python = ">=3.10"
dependencies = []
keywords = ["finops", "scaling", "deployments", "schedule", "reconciler", "cost"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["finops_scaler"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
