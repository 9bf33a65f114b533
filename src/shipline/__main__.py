"""Entry point for ``python -m shipline``."""

from shipline.cli.app import app


def main() -> None:
    """Run the shipline CLI."""
    app()


if __name__ == "__main__":
    main()
