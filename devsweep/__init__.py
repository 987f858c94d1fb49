"""Housekeeping tools for development trees: tidy backup copies, act on Go package directories, install or compare snippets."""

__version__ = "0.1.0"