"""Allow ``python -m shortsfeed``."""

from shortsfeed.cli.main import main

if __name__ == "__main__":  # pragma: no cover
    main()
