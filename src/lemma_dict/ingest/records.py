"""Validated shapes of raw Wiktionary extraction records."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _as_text_list(value: Any) -> list[str]:
    return [str(item) for item in _as_list(value) if item is not None]


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class FormOf(_Lenient):
    word: Optional[str] = None


class Sense(_Lenient):
    glosses: List[str] = Field(default_factory=list)
    raw_glosses: List[str] = Field(default_factory=list)
    raw_tags: List[str] = Field(default_factory=list)
    form_of: List[FormOf] = Field(default_factory=list)

    @field_validator("glosses", "raw_glosses", "raw_tags", mode="before")
    def coerce_text_list(cls, v: Any) -> list[str]:
        return _as_text_list(v)

    @field_validator("form_of", mode="before")
    def coerce_form_of(cls, v: Any) -> list:
        return [item for item in _as_list(v) if isinstance(item, dict)]

    def pointer_target(self) -> Optional[str]:
        """Lemma this sense points at, if it is an inflection pointer."""
        for target in self.form_of:
            if target.word and target.word.strip():
                return target.word.strip()
        return None


class Form(_Lenient):
    form: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    source: Optional[str] = None

    @field_validator("tags", mode="before")
    def coerce_tags(cls, v: Any) -> list[str]:
        return _as_text_list(v)


class Related(_Lenient):
    word: Optional[str] = None


class Template(_Lenient):
    name: Optional[str] = None
    args: Dict[str, Any] = Field(default_factory=dict)
    expansion: Optional[str] = None


class RawRecord(_Lenient):
    word: Optional[str] = None
    lang: Optional[str] = None
    lang_code: Optional[str] = None
    pos: Optional[str] = None
    senses: List[Sense] = Field(default_factory=list)
    forms: List[Form] = Field(default_factory=list)
    related: List[Related] = Field(default_factory=list)
    head_templates: List[Template] = Field(default_factory=list)
    inflection_templates: List[Template] = Field(default_factory=list)
    etymology_text: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("senses", "related", "head_templates", "inflection_templates", mode="before")
    def drop_non_objects(cls, v: Any) -> list:
        return [item for item in _as_list(v) if isinstance(item, dict)]

    @field_validator("forms", mode="before")
    def coerce_forms(cls, v: Any) -> list:
        # Some extractions list bare strings instead of form objects.
        forms = []
        for item in _as_list(v):
            if isinstance(item, str):
                forms.append({"form": item})
            elif isinstance(item, dict):
                forms.append(item)
        return forms

    @field_validator("meta", mode="before")
    def coerce_meta(cls, v: Any) -> dict:
        return v if isinstance(v, dict) else {}

    @property
    def part_of_speech(self) -> str:
        return (self.pos or "").strip() or "unknown"

    def template_names(self) -> list[str]:
        names = []
        for template in [*self.head_templates, *self.inflection_templates]:
            if template.name and template.name not in names:
                names.append(template.name)
        return names

    def extraction_date(self) -> Optional[str]:
        value = self.meta.get("extracted") or self.meta.get("date")
        return str(value) if value else None


def parse_record(line: str) -> RawRecord:
    """Parse one JSON line; raises ``ValueError`` subclasses on bad input."""
    payload = json.loads(line)
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")
    return RawRecord.model_validate(payload)
