[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "microvmkit"
version = "0.22.0"
description = "API data models, rate limiter builders, network interface validation and vsock helpers for microVM monitors"
requires-python = ">=3.10"
dependencies = []
keywords = ["microvm", "vmm", "virtualization", "vsock", "cni", "rate-limiter"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["microvmkit", "microvmkit.*"]

[tool.pytest.ini_options]
addopts = "-ra"
