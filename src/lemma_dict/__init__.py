"""Greek Kindle dictionary builder from Wiktionary extractions."""

__version__ = "0.3.0"
