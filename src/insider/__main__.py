"""Allow ``python -m insider <command>``; the streaming gateway spawns stages this way."""

from insider.cli.app import app

if __name__ == "__main__":
    app()
