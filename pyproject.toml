[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "yuntu-client"
version = "1.0.0"
description = "Render-farm client services: Maya installation, renderer and plug-in detection, scene inspection and log upload to OSS object storage."
requires-python = ">=3.10"
dependencies = [
    "httpx",
]
keywords = [
    "maya",
    "arnold",
    "rendering",
    "render-farm",
    "plugins",
    "oss",
    "logs",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: 3D Rendering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
yuntu-maya-detect = "yuntu_client.maya_detector:main"

[tool.hatch.build.targets.wheel]
packages = ["yuntu_client"]

[tool.hatch.build.targets.sdist]
include = [
    "yuntu_client",
    "tests",
    "pyproject.toml",
    "README.md",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
