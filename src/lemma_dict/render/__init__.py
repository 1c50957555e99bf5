"""Kindle dictionary markup and conversion."""
