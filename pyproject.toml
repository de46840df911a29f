[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "servo42d"
version = "1.2.0"
description = "RS485 control of MKS SERVO42D stepper drivers and the kinematics of a three-wheel omnidirectional base"
requires-python = ">=3.10"
keywords = [
    "servo42d",
    "mks",
    "stepper",
    "rs485",
    "robotics",
    "omnidirectional",
    "motor-control",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
]
dependencies = [
    "pyserial>=3.5",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
]

[project.scripts]
servo42d = "servo42d.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["servo42d"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
