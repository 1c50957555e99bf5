"""Shared infrastructure for the dictionary build toolchain."""

from __future__ import annotations

from .config import BuildSettings, get_config_paths
from .types import BucketSummary, OutcomeRecord

__all__ = [
    "BucketSummary",
    "BuildSettings",
    "OutcomeRecord",
    "get_config_paths",
]
