"""Split the headword table into letter-range buckets.

A headword lives in the bucket of its own first letter (its primary
group). It is also copied into every other bucket that one of its
inflections starts in, so a reader looking up an inflected form always
finds the lemma in the volume that covers the form's initial letter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import yaml

from lemma_dict.common.config import get_config_paths
from lemma_dict.common.types import BucketSummary

from .aggregator import HeadwordEntry, HeadwordTable, sample_size
from .normalizer import classify, sort_key, sort_words

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LetterGroup:
    index: int
    letters: tuple[str, ...]

    def __contains__(self, letter: object) -> bool:
        return letter in self.letters

    @property
    def label(self) -> str:
        if len(self.letters) == 1:
            return self.letters[0]
        return f"{self.letters[0]}-{self.letters[-1]}"


@dataclass(frozen=True)
class LetterGroupScheme:
    """Ordered, exhaustive, non-overlapping grouping of the alphabet."""

    name: str
    alphabet: tuple[str, ...]
    groups: tuple[LetterGroup, ...]
    _by_letter: dict[str, LetterGroup] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self.validate()
        for group in self.groups:
            for letter in group.letters:
                self._by_letter[letter] = group

    @classmethod
    def from_letters(
        cls, name: str, groups: Iterable[Iterable[str]], alphabet: Iterable[str] | None = None
    ) -> "LetterGroupScheme":
        built = tuple(
            LetterGroup(index=i, letters=tuple(str(letter) for letter in letters))
            for i, letters in enumerate(groups, start=1)
        )
        letters = tuple(alphabet) if alphabet is not None else tuple(
            letter for group in built for letter in group.letters
        )
        return cls(name=name, alphabet=letters, groups=built)

    @classmethod
    def load(cls, name: str, path: Path | None = None) -> "LetterGroupScheme":
        path = path or get_config_paths()["letter_groups"]
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        schemes = data.get("schemes") or {}
        if name not in schemes:
            raise ValueError(f"Unknown letter group scheme {name!r}; expected one of {sorted(schemes)}")
        return cls.from_letters(name, schemes[name], data.get("alphabet"))

    def validate(self) -> None:
        if not self.groups:
            raise ValueError(f"Scheme {self.name!r} has no groups")
        seen: dict[str, int] = {}
        for group in self.groups:
            if not group.letters:
                raise ValueError(f"Scheme {self.name!r} group {group.index} is empty")
            for letter in group.letters:
                if letter in seen:
                    raise ValueError(
                        f"Letter {letter!r} appears in groups {seen[letter]} and {group.index}"
                    )
                seen[letter] = group.index
        missing = [letter for letter in self.alphabet if letter not in seen]
        if missing:
            raise ValueError(f"Scheme {self.name!r} does not cover {''.join(missing)}")

    def group_for(self, letter: str) -> Optional[LetterGroup]:
        return self._by_letter.get(letter)

    def get(self, index: int) -> LetterGroup:
        if not (1 <= index <= len(self.groups)):
            raise ValueError(f"Part must be between 1 and {len(self.groups)}, got {index}")
        return self.groups[index - 1]

    def __len__(self) -> int:
        return len(self.groups)


def primary_group(word: str, scheme: LetterGroupScheme) -> Optional[int]:
    group = scheme.group_for(classify(word))
    return group.index if group else None


@dataclass
class PartitionAssignment:
    primary: dict[int, set[str]]
    secondary: dict[int, set[str]]
    unplaced: list[str] = field(default_factory=list)

    def members(self, index: int) -> set[str]:
        return self.primary.get(index, set()) | self.secondary.get(index, set())


def assign(table: HeadwordTable, scheme: LetterGroupScheme) -> PartitionAssignment:
    primary: dict[int, set[str]] = {group.index: set() for group in scheme.groups}
    secondary: dict[int, set[str]] = {group.index: set() for group in scheme.groups}
    unplaced: list[str] = []

    for headword in table:
        home = primary_group(headword, scheme)
        if home is None:
            unplaced.append(headword)
        else:
            primary[home].add(headword)
        for form in table.inflections_of(headword):
            index = primary_group(form, scheme)
            if index is not None and index != home:
                secondary[index].add(headword)

    if unplaced:
        logger.info(
            "%d headwords start outside every letter group",
            len(unplaced),
            extra={"scheme": scheme.name, "examples": unplaced[:5]},
        )
    return PartitionAssignment(primary=primary, secondary=secondary, unplaced=unplaced)


def partition(table: HeadwordTable, scheme: LetterGroupScheme) -> dict[int, set[str]]:
    """Group index -> headwords emitted into that group's bucket."""
    assignment = assign(table, scheme)
    return {group.index: assignment.members(group.index) for group in scheme.groups}


def letter_range(words: Iterable[str]) -> str:
    """``"first-last"`` initial letters present among ``words``."""
    letters = {classify(word) for word in words}
    letters.discard("")
    if not letters:
        return ""
    ordered = sorted(letters, key=sort_key)
    if len(ordered) == 1:
        return ordered[0]
    return f"{ordered[0]}-{ordered[-1]}"


@dataclass
class PartitionedBucket:
    """One output volume: sorted headwords plus the data needed to title it."""

    label: str
    headwords: list[str]
    group: Optional[LetterGroup] = None
    primary: frozenset[str] = frozenset()

    @property
    def letter_range(self) -> str:
        return letter_range(self.primary or self.headwords)

    def entries(self, table: HeadwordTable) -> list[tuple[str, list[HeadwordEntry]]]:
        return [(headword, table.entries_for(headword)) for headword in self.headwords]

    def summary(self) -> BucketSummary:
        primary = len(self.primary) if self.group else len(self.headwords)
        return {
            "label": self.label,
            "headwords": len(self.headwords),
            "primary": primary,
            "secondary": len(self.headwords) - primary,
            "letter_range": self.letter_range,
        }

    def __len__(self) -> int:
        return len(self.headwords)


def build_buckets(
    table: HeadwordTable,
    scheme: LetterGroupScheme,
    parts: Optional[Iterable[int]] = None,
) -> list[PartitionedBucket]:
    assignment = assign(table, scheme)
    indexes = list(parts) if parts is not None else [group.index for group in scheme.groups]
    buckets = []
    for index in indexes:
        group = scheme.get(index)
        buckets.append(
            PartitionedBucket(
                label=group.label,
                headwords=sort_words(assignment.members(index)),
                group=group,
                primary=frozenset(assignment.primary[index]),
            )
        )
    return buckets


def single_bucket(table: HeadwordTable) -> PartitionedBucket:
    return PartitionedBucket(label="all", headwords=sort_words(table))


def sample_bucket(table: HeadwordTable, percent: float) -> PartitionedBucket:
    """The first ``ceil(n * percent / 100)`` headwords in sort order."""
    ordered = sort_words(table)
    size = sample_size(len(ordered), percent) or 0
    return PartitionedBucket(label=f"{percent:g}pct", headwords=ordered[:size])
