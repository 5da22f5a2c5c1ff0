[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "workstudy"
version = "1.0.0"
description = "Local activity storage for a work and study assistant: records, SQLite storage, directories and configuration"
requires-python = ">=3.10"
dependencies = []
keywords = ["productivity", "activity", "storage", "sqlite", "configuration"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Office/Business",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["workstudy*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
