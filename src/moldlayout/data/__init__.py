"""Packaged lookup tables."""
