"""metawatch - react to front-matter changes in a markdown vault."""

__version__ = "0.1.0"
