"""memeforge: turn workplace frustrations into memes through a typed step pipeline."""

__version__ = "0.1.0"
