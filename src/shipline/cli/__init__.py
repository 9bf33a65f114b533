"""shipline command-line interface."""
