"""Shared type definitions for the dictionary build toolchain."""
from __future__ import annotations

from typing import TypedDict


class BucketSummary(TypedDict):
    label: str
    headwords: int
    primary: int
    secondary: int
    letter_range: str


class OutcomeRecord(TypedDict):
    label: str
    status: str
    message: str
    output: str | None


__all__ = [
    "BucketSummary",
    "OutcomeRecord",
]
