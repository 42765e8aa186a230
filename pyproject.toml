[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mcastchat"
version = "0.1.0"
description = "Command-line multicast chat over UDP and a broadcast daytime round-trip probe"
requires-python = ">=3.10"
dependencies = []
keywords = ["multicast", "udp", "chat", "broadcast", "daytime", "networking"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
mcastchat = "mcastchat.chat:main"
mcastchat-sender = "mcastchat.simple:sender_main"
mcastchat-receiver = "mcastchat.simple:receiver_main"
mcastchat-daytime = "mcastchat.daytime:main"

[tool.hatch.build.targets.wheel]
packages = ["mcastchat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
