[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "studentservice"
version = "0.1.0"
description = "HTTP service and bulk-upload worker for student records and school vaccination tracking"
requires-python = ">=3.10"
keywords = ["students", "vaccination", "school", "bulk-upload", "flask", "rabbitmq", "xlsx"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
]
dependencies = [
    "flask>=2.3",
    "werkzeug>=2.3",
    "sqlalchemy>=2.0",
    "pika>=1.3",
    "requests>=2.31",
    "python-dotenv>=1.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "responses>=0.24",
]

[project.scripts]
studentservice = "studentservice.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["studentservice"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
