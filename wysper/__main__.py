"""Allow running as ``python -m wysper``."""

from wysper.cli.main import app

if __name__ == "__main__":
    app()
