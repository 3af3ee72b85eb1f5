"""paws4life dog-care advice service."""

__version__ = "0.1.0"
