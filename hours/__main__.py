"""
Main entry point for hours when run as a module.

Allows running with: python -m hours
"""

from hours.cli.main import app

if __name__ == "__main__":
    app()
