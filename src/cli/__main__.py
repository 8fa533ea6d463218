"""
Entry point for running CogniGuide as a module.

Usage:
    python -m src.cli recommend
    python -m src.cli due
    python -m src.cli --help
"""
from .engine_cli import run

if __name__ == "__main__":
    run()
