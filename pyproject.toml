[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "metriclaunch"
version = "0.1.0"
description = "Metric view configuration, periodic export and telemetry pipeline settings"
requires-python = ">=3.10"
dependencies = []
keywords = ["metrics", "telemetry", "views", "exporter", "monitoring"]
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
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["metriclaunch"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
