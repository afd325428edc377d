"""Command-line driver for memeforge."""
