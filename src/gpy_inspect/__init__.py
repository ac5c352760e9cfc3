"""Integrity report for .gpy files."""
