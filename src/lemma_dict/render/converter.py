from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from lemma_dict.common.types import OutcomeRecord

logger = logging.getLogger(__name__)

KNOWN_CONVERTER_PATHS = (
    "/Applications/Kindle Previewer 3.app/Contents/lib/fc/bin/kindlepreviewer",
    "/Applications/Kindle Previewer.app/Contents/lib/fc/bin/kindlepreviewer",
    "~/Applications/Kindle Previewer 3.app/Contents/lib/fc/bin/kindlepreviewer",
)
CONVERTER_NAME = "kindlepreviewer"

STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_TIMEOUT = "timeout"
STATUS_SKIPPED = "skipped"


@dataclass
class BuildOutcome:
    label: str
    status: str
    message: str = ""
    output: Optional[Path] = None

    @property
    def failed(self) -> bool:
        return self.status in (STATUS_FAILED, STATUS_TIMEOUT)

    def as_record(self) -> OutcomeRecord:
        return {
            "label": self.label,
            "status": self.status,
            "message": self.message,
            "output": str(self.output) if self.output else None,
        }


def find_converter(explicit: Optional[str] = None) -> Optional[str]:
    """Locate the converter: explicit path or name, known installs, then ``PATH``."""
    if explicit:
        path = Path(explicit).expanduser()
        if path.is_file():
            return str(path)
        return shutil.which(explicit)
    for candidate in KNOWN_CONVERTER_PATHS:
        path = Path(os.path.expanduser(candidate))
        if path.is_file():
            return str(path)
    return shutil.which(CONVERTER_NAME)


def converter_command(converter: str, opf_path: Path) -> list[str]:
    return [converter, opf_path.name, "-convert", "-output", "."]


def run_converter(
    label: str,
    opf_path: Path,
    *,
    converter: Optional[str],
    timeout: float,
    command: Optional[Sequence[str]] = None,
) -> BuildOutcome:
    """Convert one bucket's OPF package, bounded by ``timeout`` seconds.

    Failures are reported in the outcome, never raised, so one bucket
    cannot abort the others.
    """
    if not converter:
        return BuildOutcome(
            label,
            STATUS_SKIPPED,
            f"Converter not found; open {opf_path} in Kindle Previewer manually",
        )

    expected = opf_path.with_suffix(".mobi")
    if expected.exists():
        expected.unlink()

    args = list(command) if command is not None else converter_command(converter, opf_path)
    logger.info("Running converter for %s", label, extra={"command": args, "timeout": timeout})
    try:
        result = subprocess.run(
            args,
            cwd=str(opf_path.parent),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        logger.error("Converter timed out for %s after %.0fs", label, timeout)
        return BuildOutcome(label, STATUS_TIMEOUT, f"Timed out after {timeout:g}s")
    except OSError as exc:
        logger.error("Converter could not start for %s: %s", label, exc)
        return BuildOutcome(label, STATUS_FAILED, str(exc))

    if result.returncode != 0:
        tail = (result.stderr or result.stdout or "").strip().splitlines()[-3:]
        message = f"Exit code {result.returncode}" + (f": {' | '.join(tail)}" if tail else "")
        logger.error("Converter failed for %s", label, extra={"detail": message})
        return BuildOutcome(label, STATUS_FAILED, message)

    output = expected if expected.exists() else next(iter(sorted(opf_path.parent.rglob("*.mobi"))), None)
    if output is None:
        return BuildOutcome(label, STATUS_FAILED, "Converter finished but produced no .mobi file")
    return BuildOutcome(label, STATUS_OK, f"Generated {output.name}", output)


def copy_to_dist(output: Path, dist_dir: Path) -> Optional[Path]:
    try:
        dist_dir.mkdir(parents=True, exist_ok=True)
        target = dist_dir / output.name
        shutil.copy2(output, target)
    except OSError as exc:
        logger.warning("Could not copy %s to %s: %s", output, dist_dir, exc)
        return None
    return target
