[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vlessproxy"
version = "0.1.0"
description = "A small asyncio VLESS proxy server relaying TCP and UDP traffic"
requires-python = ">=3.10"
dependencies = []
keywords = ["vless", "proxy", "asyncio", "tcp", "udp", "tunnel"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: No Input/Output (Daemon)",
    "Framework :: AsyncIO",
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
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
vlessproxy = "vlessproxy.server:main"

[tool.hatch.build.targets.wheel]
packages = ["vlessproxy"]

[tool.pytest.ini_options]
addopts = "-ra"
