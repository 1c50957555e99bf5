"""Command line interface for building Greek Kindle dictionaries."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .common.config import SOURCE_LANGUAGES, BuildSettings, available_group_schemes
from .ingest.downloader import download
from .ingest.reader import read_extraction_date
from .lexicon.partitioner import LetterGroupScheme
from .pipeline import BuildReport, build

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _percent(value: str) -> float:
    try:
        percent = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected a number, got {value!r}") from exc
    if not (0 < percent <= 100):
        raise argparse.ArgumentTypeError("Limit must be between 0 and 100")
    return percent


def _settings_from_args(args: argparse.Namespace) -> BuildSettings:
    return BuildSettings.from_env(
        source_lang=args.source,
        input_path=Path(args.input).expanduser() if getattr(args, "input", None) else None,
        output_root=Path(args.output).expanduser() if getattr(args, "output", None) else None,
        download_date=getattr(args, "date", None),
        limit_percent=getattr(args, "limit", None),
        part=getattr(args, "part", None),
        group_scheme=getattr(args, "groups", None),
        converter=getattr(args, "converter", None),
        converter_timeout=getattr(args, "timeout", None),
        convert=False if getattr(args, "no_convert", False) else None,
    )


def _print_report(report: BuildReport) -> None:
    stats = report.aggregation.stats
    print(
        "Processed {} lines ({} malformed); {} headwords, {} entries, {} inflections".format(
            stats.lines,
            stats.malformed,
            stats.headwords,
            stats.entries,
            stats.inflections,
        )
    )
    if stats.truncated and stats.limit is not None:
        print(f"Sampling stopped after {stats.limit} accepted records")
    if stats.unresolved_lemmas:
        print(f"{stats.unresolved_lemmas} inflection pointers name lemmas without an entry")

    header = f"{'Bucket':>10} | {'Headwords':>9} | {'Range':>7} | {'Status':>8} | Detail"
    divider = "-" * len(header)
    print(divider)
    print(header)
    print(divider)
    for bucket, outcome in zip(report.buckets, report.outcomes):
        record = outcome.as_record()
        print(
            f"{record['label']:>10} | {len(bucket):>9} | {bucket.letter_range:>7} | "
            f"{record['status']:>8} | {record['message']}"
        )
        if record["output"]:
            print(f"{'':>10} | {'':>9} | {'':>7} | {'':>8} | -> {record['output']}")


def _run_build(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    if settings.source_lang == "en" and settings.part is not None:
        print("Note: English dictionaries are not split into parts. Building the complete dictionary.")
        settings.part = None
    settings.validate()

    input_path = settings.resolved_input()
    if not input_path.is_file():
        raise FileNotFoundError(
            f"Data file '{input_path}' does not exist; run the download command first"
        )

    logger.info(
        "Building dictionary",
        extra={
            "source": settings.source_lang,
            "input": str(input_path),
            "limit": settings.limit_percent,
            "part": settings.part,
            "scheme": settings.group_scheme,
        },
    )
    report = build(settings, progress=sys.stderr.isatty())
    _print_report(report)
    return 1 if report.failed else 0


def _run_download(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    settings.validate()
    result = download(settings.source_lang, settings.download_date, work_dir=Path(args.work_dir))
    print(f"Data ready at {result.path} (source: {result.source}, date: {result.download_date})")
    extraction_date = read_extraction_date(result.path)
    if extraction_date:
        print(f"Wiktionary data extracted: {extraction_date}")
    if result.download_date != settings.download_date:
        print(f"Fallback data uses date {result.download_date} instead of {settings.download_date}")
    command = f"lemma-dict -s {settings.source_lang} --date {result.download_date} build"
    if result.path.parent.resolve() != Path.cwd().resolve():
        command += f" -i {result.path}"
    print(f"Build with: {command}")
    return 0


def _run_groups(args: argparse.Namespace) -> int:
    scheme = LetterGroupScheme.load(args.groups or "five")
    print(f"Letter groups for scheme '{scheme.name}':")
    for group in scheme.groups:
        print(f"  Part {group.index}: {'-'.join(group.letters)}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lemma-dict",
        description="Build Greek Kindle dictionaries from Wiktionary extractions",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "-s",
        "--source",
        choices=SOURCE_LANGUAGES,
        default="en",
        help="Source Wiktionary: 'en' (Greek-English) or 'el' (monolingual)",
    )
    parser.add_argument("--date", default=None, help="Download date stamp (YYYYMMDD); defaults to today")

    subparsers = parser.add_subparsers(dest="command", required=True)

    download_parser = subparsers.add_parser("download", help="Fetch the raw extraction")
    download_parser.add_argument("--work-dir", default=".", help="Directory for the data file")
    download_parser.set_defaults(handler=_run_download)

    build_parser = subparsers.add_parser("build", help="Aggregate, partition and render")
    build_parser.add_argument("-i", "--input", default=None, help="JSONL extraction to read")
    build_parser.add_argument("-o", "--output", default=None, help="Output root directory")
    build_parser.add_argument(
        "-l",
        "--limit",
        type=_percent,
        default=None,
        help="Keep only the first PERCENT%% of entries (test builds)",
    )
    build_parser.add_argument(
        "-p", "--part", type=int, default=None, help="Build a single letter part (el only)"
    )
    build_parser.add_argument(
        "--groups",
        default=None,
        help=f"Letter group scheme ({', '.join(sorted(available_group_schemes()))})",
    )
    build_parser.add_argument("--converter", default=None, help="Converter executable")
    build_parser.add_argument(
        "--timeout", type=float, default=None, help="Converter timeout per bucket, in seconds"
    )
    build_parser.add_argument(
        "--no-convert", action="store_true", help="Only write the markup sources"
    )
    build_parser.set_defaults(handler=_run_build)

    groups_parser = subparsers.add_parser("groups", help="List the letter parts of a scheme")
    groups_parser.add_argument("--groups", default=None, help="Letter group scheme")
    groups_parser.set_defaults(handler=_run_groups)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:  # pragma: no cover - delegated to argparse
        return exc.code

    _configure_logging(args.verbose)

    try:
        return args.handler(args)
    except (FileNotFoundError, OSError, ValueError, RuntimeError) as error:
        logger.error("Command failed: %s", error)
        print(f"Error: {error}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
