[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mediahub"
version = "0.1.0"
description = "Media library scanning for video and internet radio files, stored in SQLite"
requires-python = ">=3.10"
dependencies = []
keywords = ["media", "library", "scanner", "sqlite", "radio", "video", "pls", "asx"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mediahub"]

[tool.pytest.ini_options]
addopts = "-ra"
