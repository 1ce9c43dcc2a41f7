"""Command-line interface for imagecustomizer."""
