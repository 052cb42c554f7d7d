"""Module entry point for the bucket size report."""
from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
