"""
Main entry point for the flight snapshot cache.
"""

from flightcache.cli import app


def main() -> None:
    """Run the command line application."""
    app()


if __name__ == "__main__":
    main()
