"""Converters between .gpy files and CSV / Parquet tables."""
