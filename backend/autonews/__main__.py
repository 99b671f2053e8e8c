"""CLI entry point for python -m autonews"""
from autonews.cli.commands import app

if __name__ == "__main__":
    app()
