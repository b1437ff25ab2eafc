[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "manba"
version = "0.1.0"
description = "API gateway metadata model, validation, request filters, load balancers, configuration builders and a test backend"
requires-python = ">=3.10"
dependencies = []
keywords = ["api-gateway", "proxy", "load-balancing", "http", "routing", "builder"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
manba-backend = "manba.backend:main"

[tool.hatch.build.targets.wheel]
packages = ["manba"]

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
