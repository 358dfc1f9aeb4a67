"""Cross-linked comic notes generated from ComicVine metadata."""

__version__ = "0.1.0"
