from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass
from html import escape
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from lemma_dict.common.config import MAX_MONOLINGUAL_DEFINITIONS, MAX_RENDERED_INFLECTIONS
from lemma_dict.lexicon.aggregator import HeadwordEntry, HeadwordTable
from lemma_dict.lexicon.normalizer import classify
from lemma_dict.lexicon.partitioner import LetterGroup, PartitionedBucket

logger = logging.getLogger(__name__)

BATCH_SIZE = 1000

GREEK_LETTER_NAMES = {
    "Α": "alpha", "Β": "beta", "Γ": "gamma", "Δ": "delta",
    "Ε": "epsilon", "Ζ": "zeta", "Η": "eta", "Θ": "theta",
    "Ι": "iota", "Κ": "kappa", "Λ": "lambda", "Μ": "mu",
    "Ν": "nu", "Ξ": "xi", "Ο": "omicron", "Π": "pi",
    "Ρ": "rho", "Σ": "sigma", "Τ": "tau", "Υ": "upsilon",
    "Φ": "phi", "Χ": "chi", "Ψ": "psi", "Ω": "omega",
}

# Greek abbreviations keep monolingual volumes small.
POS_ABBREVIATIONS = {
    "noun": "ουσ.",
    "verb": "ρ.",
    "adj": "επίθ.",
    "adjective": "επίθ.",
    "adv": "επίρρ.",
    "adverb": "επίρρ.",
    "num": "αριθμ.",
    "numeral": "αριθμ.",
    "name": "κύρ.όν.",
    "proper noun": "κύρ.όν.",
    "article": "άρθρ.",
}

_UNSAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9\-]")

CONTENT_HEADER = """<html xmlns:math="http://exslt.org/math" xmlns:svg="http://www.w3.org/2000/svg"
      xmlns:tl="https://kindlegen.s3.amazonaws.com/AmazonKindlePublishingGuidelines.pdf"
      xmlns:dc="http://purl.org/dc/elements/1.1/"
      xmlns:mbp="https://kindlegen.s3.amazonaws.com/AmazonKindlePublishingGuidelines.pdf"
      xmlns:idx="https://kindlegen.s3.amazonaws.com/AmazonKindlePublishingGuidelines.pdf">
  <head>
    <meta http-equiv="Content-Type" content="text/html; charset=utf-8">
    <style>
      body { font-family: Arial, sans-serif; }
      p { margin: 0.2em 0; }
      .def { margin-left: 20px; }
      .etym { font-size: 0.9em; color: #444; margin-top: 0.3em; }
      hr { margin: 5px 0; border: none; border-top: 1px solid #ccc; }
    </style>
  </head>
  <body>
    <mbp:frameset>
"""

CONTENT_FOOTER = """    </mbp:frameset>
  </body>
</html>
"""


@dataclass
class RenderContext:
    source_lang: str
    download_date: str
    extraction_date: Optional[str] = None
    limit_percent: Optional[float] = None
    total_parts: Optional[int] = None
    max_inflections: int = MAX_RENDERED_INFLECTIONS
    max_definitions: int = MAX_MONOLINGUAL_DEFINITIONS
    progress: bool = False

    @property
    def monolingual(self) -> bool:
        return self.source_lang == "el"

    @property
    def edition(self) -> str:
        return "el-el" if self.monolingual else "en-el"


@dataclass
class RenderedBucket:
    directory: Path
    opf_path: Path
    entries: int


def letters_to_names(text: str) -> str:
    """Spell Greek capitals as ASCII names for file and identifier use."""
    for letter, name in GREEK_LETTER_NAMES.items():
        text = text.replace(letter, name)
    return _UNSAFE_NAME_RE.sub("", text)


def format_pos(pos: Optional[str], context: RenderContext) -> str:
    label = pos or "unknown"
    if context.monolingual:
        return POS_ABBREVIATIONS.get(label.lower(), label)
    return label


def bucket_stem(bucket: PartitionedBucket, context: RenderContext) -> str:
    stem = f"lemma_greek_{context.source_lang}_{context.download_date}"
    if bucket.group is not None:
        suffix = letters_to_names(bucket.letter_range) or f"part{bucket.group.index}"
        return f"{stem}_{suffix}"
    if context.limit_percent is not None:
        return f"{stem}_{context.limit_percent:g}pct"
    return stem


def _definition_lines(definitions: list[str]) -> list[str]:
    if len(definitions) > 1:
        return [
            f"<p class='def'>{i}. {escape(definition)}</p>"
            for i, definition in enumerate(definitions, start=1)
        ]
    return [f"<p class='def'>{escape(definition)}</p>" for definition in definitions]


def select_inflections(
    entries: list[HeadwordEntry], limit: int, group: Optional[LetterGroup] = None
) -> list[str]:
    """Inflections to index, capped at ``limit``.

    Forms starting in ``group`` come first, so a headword copied into a
    bucket for one of its inflections keeps that inflection under the cap.
    """
    inflections: dict[str, None] = {}
    for entry in entries:
        inflections.update(dict.fromkeys(entry.inflections))
    forms = list(inflections)
    if group is not None:
        local = [form for form in forms if classify(form) in group]
        forms = local + [form for form in forms if classify(form) not in group]
    return forms[:limit]


def render_entry(
    headword: str,
    entries: list[HeadwordEntry],
    context: RenderContext,
    group: Optional[LetterGroup] = None,
) -> str:
    """Markup for one headword and all of its part-of-speech entries."""
    forms = select_inflections(entries, context.max_inflections, group)

    lines = [
        '<idx:entry name="default" scriptable="yes" spell="yes">',
        "  <idx:short>",
        f'    <idx:orth value="{escape(headword)}"><b>{escape(headword)}</b>',
    ]
    if forms:
        lines.append("      <idx:infl>")
        lines.extend(
            f'        <idx:iform value="{escape(form)}" exact="yes" />' for form in forms
        )
        lines.append("      </idx:infl>")
    lines.extend(["    </idx:orth>", "  </idx:short>"])

    for idx, entry in enumerate(entries):
        lines.append(f"  <p><i>{escape(format_pos(entry.pos, context))}</i></p>")
        definitions = entry.definitions
        if context.monolingual:
            definitions = definitions[: context.max_definitions]
        lines.extend(f"  {line}" for line in _definition_lines(definitions))
        if entry.etymology and not context.monolingual:
            lines.append(f"  <p class='etym'>[Etymology: {escape(entry.etymology)}]</p>")
        if idx < len(entries) - 1:
            lines.append("  <hr />")

    lines.extend(["</idx:entry>", "<hr/>", ""])
    return "\n".join(lines)


def _title(bucket: PartitionedBucket, context: RenderContext) -> tuple[str, str]:
    edition = context.edition.upper()
    compact = edition.replace("-", "")
    if bucket.group is not None and bucket.letter_range:
        names = letters_to_names(bucket.letter_range).upper()
        return f"LemmaGreek{compact}{names}", f"Lemma Greek {edition} Letters {bucket.letter_range}"
    if bucket.group is not None:
        return (
            f"LemmaGreek{compact}Part{bucket.group.index}",
            f"Lemma Greek {edition} Part {bucket.group.index}",
        )
    return f"LemmaGreek{compact}", f"Lemma Greek Dictionary {edition}"


def write_content(
    path: Path, bucket: PartitionedBucket, table: HeadwordTable, context: RenderContext
) -> int:
    count = 0
    with path.open("w", encoding="utf-8") as handle:
        handle.write(CONTENT_HEADER)
        batch: list[str] = []
        for headword, entries in tqdm(
            bucket.entries(table),
            desc=f"Rendering {bucket.label}",
            unit="headword",
            disable=not context.progress,
        ):
            if not entries:
                continue
            batch.append(render_entry(headword, entries, context, bucket.group))
            count += 1
            if len(batch) >= BATCH_SIZE:
                handle.write("".join(batch))
                batch.clear()
        handle.write("".join(batch))
        handle.write(CONTENT_FOOTER)
    return count


def write_cover(path: Path, bucket: PartitionedBucket, context: RenderContext) -> None:
    source = "Greek Wiktionary (Monolingual)" if context.monolingual else "English Wiktionary"
    if context.extraction_date:
        date_info = f"Wiktionary data from: {context.extraction_date}"
    else:
        date_info = f"Downloaded: {context.download_date}"
    if bucket.group is not None and bucket.letter_range:
        part_info = f"<p>Letters {escape(bucket.letter_range)}</p>"
    elif bucket.group is not None:
        part_info = f"<p>Part {bucket.group.index} of {context.total_parts or '?'}</p>"
    else:
        part_info = ""
    path.write_text(
        "<html>\n"
        "  <head><meta content=\"text/html; charset=utf-8\" http-equiv=\"content-type\"></head>\n"
        "  <body>\n"
        "    <h1>Lemma Greek Dictionary</h1>\n"
        f"    <h3>From {source}</h3>\n"
        f"    {part_info}\n"
        f"    <p>{escape(date_info)}</p>\n"
        "  </body>\n"
        "</html>\n",
        encoding="utf-8",
    )


def write_copyright(path: Path, context: RenderContext) -> None:
    path.write_text(
        "<html>\n"
        "  <head><meta content=\"text/html; charset=utf-8\" http-equiv=\"content-type\"></head>\n"
        "  <body>\n"
        "    <h2>Copyright Notice</h2>\n"
        "    <p>This dictionary is created from Wiktionary data processed by Kaikki.</p>\n"
        "    <p>Wiktionary content is available under the Creative Commons "
        "Attribution-ShareAlike License.</p>\n"
        f"    <p>Dictionary compilation by Lemma, {context.download_date[:4]}</p>\n"
        f"    <p>Wiktionary data extracted: {escape(context.extraction_date or 'Unknown')}</p>\n"
        f"    <p>Dictionary created: {escape(context.download_date)}</p>\n"
        "  </body>\n"
        "</html>\n",
        encoding="utf-8",
    )


def write_usage(path: Path, context: RenderContext) -> None:
    if context.monolingual:
        kind, wiktionary = "Greek-Greek (monolingual)", "Greek"
    else:
        kind, wiktionary = "Greek-English", "English"
    path.write_text(
        "<html>\n"
        "  <head><meta content=\"text/html; charset=utf-8\" http-equiv=\"content-type\"></head>\n"
        "  <body>\n"
        "    <h2>How to Use Lemma Greek Dictionary</h2>\n"
        f"    <p>This is a {kind} dictionary with Modern Greek words from {wiktionary} Wiktionary.</p>\n"
        "    <h3>Features:</h3>\n"
        "    <ul>\n"
        "      <li>Look up any Greek word while reading</li>\n"
        "      <li>Inflected forms automatically redirect to their lemma</li>\n"
        "      <li>Includes part of speech information</li>\n"
        "    </ul>\n"
        "    <h3>To set as default Greek dictionary:</h3>\n"
        "    <ol>\n"
        "      <li>Look up any Greek word in your book</li>\n"
        "      <li>Tap the dictionary name in the popup</li>\n"
        "      <li>Select \"Lemma Greek Dictionary\"</li>\n"
        "    </ol>\n"
        "  </body>\n"
        "</html>\n",
        encoding="utf-8",
    )


def write_opf(path: Path, bucket: PartitionedBucket, context: RenderContext) -> None:
    identifier, title = _title(bucket, context)
    stamp = context.extraction_date or context.download_date
    out_lang = "el" if context.monolingual else "en"
    path.write_text(
        f"""<?xml version="1.0"?>
<package version="2.0" xmlns="http://www.idpf.org/2007/opf" unique-identifier="BookId">
  <metadata>
    <dc:title>{escape(title)} ({escape(stamp)})</dc:title>
    <dc:creator opf:role="aut">Lemma</dc:creator>
    <dc:language>el</dc:language>
    <dc:date>{escape(context.download_date)}</dc:date>
    <dc:identifier id="BookId" opf:scheme="UUID">{identifier}-{escape(context.download_date)}</dc:identifier>
    <meta name="wiktionary-extraction-date" content="{escape(context.extraction_date or 'Unknown')}" />
    <meta name="dictionary-name" content="{escape(title)}" />
    <x-metadata>
      <DictionaryInLanguage>el</DictionaryInLanguage>
      <DictionaryOutLanguage>{out_lang}</DictionaryOutLanguage>
      <DefaultLookupIndex>default</DefaultLookupIndex>
    </x-metadata>
  </metadata>
  <manifest>
    <item id="cover" href="cover.html" media-type="application/xhtml+xml" />
    <item id="usage" href="usage.html" media-type="application/xhtml+xml" />
    <item id="copyright" href="copyright.html" media-type="application/xhtml+xml" />
    <item id="content" href="content.html" media-type="application/xhtml+xml" />
  </manifest>
  <spine>
    <itemref idref="cover" />
    <itemref idref="usage" />
    <itemref idref="copyright" />
    <itemref idref="content" />
  </spine>
  <guide>
    <reference type="index" title="IndexName" href="content.html"/>
  </guide>
</package>
""",
        encoding="utf-8",
    )


def write_bucket(
    bucket: PartitionedBucket,
    table: HeadwordTable,
    output_root: Path,
    context: RenderContext,
) -> RenderedBucket:
    """Write one bucket's source files into a fresh directory under ``output_root``."""
    stem = bucket_stem(bucket, context)
    directory = Path(output_root) / stem
    if directory.exists():
        logger.info("Removing existing directory %s", directory)
        shutil.rmtree(directory)
    directory.mkdir(parents=True)

    count = write_content(directory / "content.html", bucket, table, context)
    write_cover(directory / "cover.html", bucket, context)
    write_usage(directory / "usage.html", context)
    write_copyright(directory / "copyright.html", context)
    opf_path = directory / f"{stem}.opf"
    write_opf(opf_path, bucket, context)

    logger.info(
        "Rendered %d headwords for %s",
        count,
        bucket.label,
        extra={"directory": str(directory), "letter_range": bucket.letter_range},
    )
    return RenderedBucket(directory=directory, opf_path=opf_path, entries=count)
