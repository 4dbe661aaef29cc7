"""Bookmarked - offline-first snapshot sync for a personal reading tracker."""

__version__ = "0.1.0"
