"""Allow ``python -m polybump``."""

from polybump.cli.app import main

if __name__ == "__main__":
    main()
