"""
vocab-sync - reconcile vocabulary learning data into a relational store.

Notebooks (stories, books, flashcards), per-notebook learning histories and
cached dictionary lookups are merged into SQLite tables, and the tables can be
read back out to YAML for backup.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("vocab-sync")
except PackageNotFoundError:
    __version__ = "0.3.0"
