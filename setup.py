"""
Setup script for synapse-learn.

Synapse is the decision core of an adaptive study platform. It serves
three roles:

1. Scheduler - SM-2 spaced repetition and the daily review queue
2. Orchestrator - Deterministic session planning from mastery and context
3. Service - Terminal CLI and HTTP API over a local state store

The 'synapse' command is the terminal entry point; the API is served with
'uvicorn synapse.api.main:app'.
"""

from setuptools import find_packages, setup

setup(
    name="synapse-learn",
    version="0.1.0",
    description="Adaptive study orchestration: SM-2 scheduling, mastery tracking and session planning",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP API
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            # fastapi.testclient
            "httpx>=0.25.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "synapse=synapse.delivery.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition sm2 mastery education",
)
