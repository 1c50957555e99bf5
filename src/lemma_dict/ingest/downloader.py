"""Fetch the raw Kaikki extraction, falling back to a local copy or a mirror."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

KAIKKI_URLS = {
    "en": "https://kaikki.org/dictionary/Greek/kaikki.org-dictionary-Greek.jsonl",
    "el": "https://kaikki.org/elwiktionary/Greek/kaikki.org-dictionary-Greek.jsonl",
}
LOCAL_FALLBACK_FILES = {
    "en": "greek_data_en_20250716.jsonl",
    "el": "greek_data_el_20250717.jsonl",
}
MIRROR_URLS = {
    "en": "https://raw.githubusercontent.com/fr2019/lemma/main/greek_data_en_20250716.jsonl",
    "el": "https://raw.githubusercontent.com/fr2019/lemma/main/greek_data_el_20250717.jsonl",
}
USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
PROGRESS_EVERY = 5 * 1024 * 1024
MAX_ATTEMPTS = 3

_DATE_RE = re.compile(r"_(\d{8})\.jsonl$")


@dataclass
class DownloadResult:
    path: Path
    download_date: str
    source: str


def _date_from_name(name: str, default: str) -> str:
    match = _DATE_RE.search(name)
    return match.group(1) if match else default


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Download attempt %d/%d failed: %s",
        retry_state.attempt_number,
        MAX_ATTEMPTS,
        exc,
    )


@retry(
    reraise=True,
    stop=stop_after_attempt(MAX_ATTEMPTS),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    retry=retry_if_exception_type(httpx.TransportError),
    before_sleep=_log_retry,
)
def stream_to_file(url: str, target: Path, *, client: Optional[httpx.Client] = None) -> int:
    """Stream ``url`` into ``target``; returns the number of bytes written."""
    owns_client = client is None
    client = client or httpx.Client(
        headers={"User-Agent": USER_AGENT},
        timeout=httpx.Timeout(300.0, connect=30.0),
        follow_redirects=True,
    )
    started = time.monotonic()
    written = 0
    tmp = target.with_suffix(target.suffix + ".part")
    try:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            total = int(response.headers.get("Content-Length") or 0)
            logger.info("Downloading %s", url, extra={"bytes": total})
            with tmp.open("wb") as handle:
                for chunk in response.iter_bytes():
                    handle.write(chunk)
                    written += len(chunk)
                    if written % PROGRESS_EVERY < len(chunk):
                        elapsed = max(time.monotonic() - started, 1e-6)
                        logger.info(
                            "Downloaded %.2f MB @ %.2f MB/s",
                            written / 1024 / 1024,
                            written / elapsed / 1024 / 1024,
                        )
        tmp.replace(target)
    finally:
        if tmp.exists():
            tmp.unlink()
        if owns_client:
            client.close()
    return written


def download(
    source_lang: str,
    download_date: str,
    *,
    work_dir: Path | None = None,
    client: Optional[httpx.Client] = None,
) -> DownloadResult:
    """Fetch the extraction for ``source_lang``.

    Tries the Kaikki URL, then a local fallback file, then the mirror. The
    returned date follows the file actually used.
    """
    if source_lang not in KAIKKI_URLS:
        raise ValueError(f"Unsupported source language {source_lang!r}")
    work_dir = Path(work_dir or Path.cwd())
    work_dir.mkdir(parents=True, exist_ok=True)

    target = work_dir / f"greek_data_{source_lang}_{download_date}.jsonl"
    if target.is_file():
        logger.info("Data file already exists: %s", target)
        return DownloadResult(target, download_date, "existing")

    try:
        stream_to_file(KAIKKI_URLS[source_lang], target, client=client)
        return DownloadResult(target, download_date, "kaikki")
    except httpx.HTTPError as exc:
        logger.warning("Primary download failed: %s", exc)

    local = work_dir / LOCAL_FALLBACK_FILES[source_lang]
    if local.is_file():
        logger.info("Using local fallback file %s", local)
        return DownloadResult(local, _date_from_name(local.name, download_date), "local")

    mirror = MIRROR_URLS[source_lang]
    mirror_date = _date_from_name(mirror, download_date)
    mirror_target = work_dir / f"greek_data_{source_lang}_{mirror_date}.jsonl"
    try:
        stream_to_file(mirror, mirror_target, client=client)
    except httpx.HTTPError as exc:
        raise RuntimeError(
            f"All download attempts failed ({exc}). Download {mirror} manually "
            f"and save it as {mirror_target.name}"
        ) from exc
    logger.info("Mirror download succeeded; using date %s", mirror_date)
    return DownloadResult(mirror_target, mirror_date, "mirror")
