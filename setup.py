"""
Setup script for cogniguide-engine.

CogniGuide is the learning state engine behind an AI tutor. It keeps
three pieces of learner state consistent between tutor turns:

1. Knowledge graph - merges the concept fragments the tutor emits each turn
2. Review queue - SM-2 spaced repetition of flashcards
3. Recommendations - ranked next actions from graph, cards and history

The 'cogniguide' command drives the engine against a local state store.
"""

from setuptools import find_packages, setup

setup(
    name="cogniguide-engine",
    version="1.0.0",
    description="Adaptive learning state engine: knowledge graph, spaced repetition and recommendations",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="CogniGuide",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "cogniguide=src.cli.engine_cli:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition knowledge-graph recommendations education",
)
