[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "optourney"
version = "0.1.0"
description = "Asynchronous tournament web server with one websocket per user"
requires-python = ">=3.10"
keywords = ["tournament", "websocket", "aiohttp", "web server", "pubsub"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "aiohttp",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
optourney = "optourney.app:main"

[tool.hatch.build.targets.wheel]
packages = ["optourney"]

[tool.pytest.ini_options]
addopts = "-ra"
