"""Headword aggregation, paradigm expansion, normalisation and partitioning."""
