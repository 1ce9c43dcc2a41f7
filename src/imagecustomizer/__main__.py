"""Entry point for ``python -m imagecustomizer``."""

from imagecustomizer.cli.main import main


if __name__ == "__main__":
    main()
