"""End-to-end dictionary build: read, filter, aggregate, partition, render."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from lemma_dict.common.config import BuildSettings, available_group_schemes, get_config_paths
from lemma_dict.ingest.reader import RecordSource
from lemma_dict.ingest.record_filter import RecordFilter
from lemma_dict.lexicon.aggregator import AggregationResult, aggregate
from lemma_dict.lexicon.paradigms import ParadigmTable
from lemma_dict.lexicon.partitioner import (
    LetterGroupScheme,
    PartitionedBucket,
    build_buckets,
    sample_bucket,
    single_bucket,
)
from lemma_dict.render.converter import (
    STATUS_FAILED,
    STATUS_OK,
    BuildOutcome,
    copy_to_dist,
    find_converter,
    run_converter,
)
from lemma_dict.render.kindle import RenderContext, write_bucket

logger = logging.getLogger(__name__)


@dataclass
class BuildReport:
    aggregation: AggregationResult
    buckets: list[PartitionedBucket] = field(default_factory=list)
    outcomes: list[BuildOutcome] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(outcome.failed for outcome in self.outcomes)


def run_aggregation(settings: BuildSettings, *, progress: bool = False) -> AggregationResult:
    source = RecordSource(settings.resolved_input(), progress=progress)
    result = aggregate(
        source,
        record_filter=RecordFilter(),
        paradigms=ParadigmTable.load(),
        limit_percent=settings.limit_percent,
    )
    stats = result.stats
    logger.info(
        "Processed %d lines with %d errors; %d records accepted",
        stats.lines,
        stats.malformed,
        stats.accepted,
        extra={"rejected": dict(stats.rejected), "truncated": stats.truncated},
    )
    return result


def plan_buckets(
    result: AggregationResult,
    settings: BuildSettings,
    scheme: Optional[LetterGroupScheme] = None,
) -> list[PartitionedBucket]:
    """Choose the buckets to emit for these settings.

    Sampling and letter splitting are exclusive: a sampled build is one
    bucket, a split build is one bucket per requested part, anything else
    is one bucket holding the whole table.
    """
    table = result.table
    if settings.limit_percent is not None:
        return [sample_bucket(table, settings.limit_percent)]
    if not settings.split:
        return [single_bucket(table)]
    scheme = scheme or LetterGroupScheme.load(settings.group_scheme)
    parts = [settings.part] if settings.part is not None else None
    return build_buckets(table, scheme, parts)


def build_bucket(
    bucket: PartitionedBucket,
    result: AggregationResult,
    settings: BuildSettings,
    context: RenderContext,
    converter: Optional[str],
) -> BuildOutcome:
    try:
        rendered = write_bucket(bucket, result.table, settings.output_root, context)
    except OSError as exc:
        logger.error("Rendering failed for %s: %s", bucket.label, exc)
        return BuildOutcome(bucket.label, STATUS_FAILED, f"Rendering failed: {exc}")

    if not settings.convert:
        return BuildOutcome(
            bucket.label,
            STATUS_OK,
            f"Wrote {rendered.entries} headwords",
            rendered.opf_path,
        )

    outcome = run_converter(
        bucket.label,
        rendered.opf_path,
        converter=converter,
        timeout=settings.converter_timeout,
    )
    if outcome.status == STATUS_OK and outcome.output is not None:
        copy_to_dist(outcome.output, get_config_paths()["dist_dir"])
    return outcome


def build(
    settings: BuildSettings,
    *,
    progress: bool = False,
    result: Optional[AggregationResult] = None,
) -> BuildReport:
    """Run a full build; each bucket's outcome is reported independently."""
    settings.validate()
    result = result or run_aggregation(settings, progress=progress)
    buckets = plan_buckets(result, settings)
    context = RenderContext(
        source_lang=settings.source_lang,
        download_date=settings.download_date,
        extraction_date=result.extraction_date,
        limit_percent=settings.limit_percent,
        total_parts=available_group_schemes().get(settings.group_scheme) if settings.split else None,
        max_inflections=settings.max_inflections,
        max_definitions=settings.max_definitions,
        progress=progress,
    )
    converter = find_converter(settings.converter) if settings.convert else None

    report = BuildReport(aggregation=result, buckets=buckets)
    for bucket in buckets:
        logger.info("Building %s", bucket.label, extra=dict(bucket.summary()))
        report.outcomes.append(build_bucket(bucket, result, settings, context, converter))
    return report
