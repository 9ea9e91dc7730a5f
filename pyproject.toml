[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "loganop"
version = "0.1.0"
description = "Configuration, defaulting and object-building logic for an application-boot Kubernetes operator"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = [
    "kubernetes",
    "operator",
    "deployment",
    "configuration",
    "reconcile",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["loganop"]

[tool.pytest.ini_options]
addopts = "-ra"
