"""Allow ``python -m revcost``."""

from revcost.cli import app

if __name__ == "__main__":
    app()
