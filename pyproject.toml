[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "goquant"
version = "0.1.0"
description = "Price-time priority order matching engine with fees, an order journal and an HTTP/WebSocket market data server"
requires-python = ">=3.10"
keywords = ["matching engine", "order book", "trading", "market data", "websocket"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "aiohttp",
    "sortedcontainers",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
goquant = "goquant.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["goquant"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
