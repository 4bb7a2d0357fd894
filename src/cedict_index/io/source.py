"""Acquisition of CC-CEDICT source text from the network or local archives."""

from __future__ import annotations

import gzip
import logging
from pathlib import Path
import shutil
import urllib.error
import urllib.request
import zipfile

logger = logging.getLogger(__name__)

CEDICT_URL = "https://www.mdbg.net/chinese/export/cedict/cedict_1_0_ts_utf-8_mdbg.zip"
CEDICT_MEMBER = "cedict_ts.u8"
DOWNLOAD_ATTEMPTS = 3


class SourceUnavailableError(RuntimeError):
    """Raised when the dictionary source cannot be downloaded or read."""


def download_archive(
    url: str,
    dest: Path,
    attempts: int = DOWNLOAD_ATTEMPTS,
    timeout: float = 60.0,
) -> Path:
    """Download ``url`` to ``dest``, retrying failed attempts.

    A partially written file is removed after each failed attempt.

    Args:
        url: Archive URL.
        dest: Destination file path.
        attempts: Number of tries before giving up.
        timeout: Per-attempt socket timeout in seconds.

    Returns:
        ``dest``.

    Raises:
        SourceUnavailableError: If every attempt fails.
    """

    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            with urllib.request.urlopen(url, timeout=timeout) as response, dest.open("wb") as handle:
                status = getattr(response, "status", 200)
                if status != 200:
                    raise urllib.error.HTTPError(url, status, f"status code {status}", None, None)
                shutil.copyfileobj(response, handle)
        except (urllib.error.URLError, OSError) as exc:
            last_error = exc
            dest.unlink(missing_ok=True)
            logger.warning("Download attempt %d/%d of %s failed: %s", attempt, attempts, url, exc)
            continue
        logger.info("Downloaded %s to %s", url, dest)
        return dest

    raise SourceUnavailableError(f"Failed to download {url} after {attempts} attempts") from last_error


def extract_cedict_text(path: Path) -> str:
    """Read CC-CEDICT text from a ``.zip`` or ``.gz`` archive, or a plain file.

    Args:
        path: Archive or ``.u8`` text file.

    Returns:
        Decoded UTF-8 dictionary text. Invalid byte sequences become U+FFFD
        so they only affect the line they occur on.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        SourceUnavailableError: If a zip archive lacks ``cedict_ts.u8``.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CC-CEDICT source not found: {path}")

    if zipfile.is_zipfile(path):
        with zipfile.ZipFile(path) as archive:
            members = {Path(name).name: name for name in archive.namelist()}
            if CEDICT_MEMBER not in members:
                raise SourceUnavailableError(f"{CEDICT_MEMBER} not found in {path}")
            raw = archive.read(members[CEDICT_MEMBER])
    elif path.suffix == ".gz":
        with gzip.open(path, "rb") as handle:
            raw = handle.read()
    else:
        raw = path.read_bytes()

    return raw.decode("utf-8", errors="replace")


def read_source_lines(path: Path) -> list[str]:
    """Return the lines of a CC-CEDICT source file or archive.

    Lines break on ``\\n`` only; a trailing ``\\r`` is left for the parser to
    strip, and other Unicode line separators stay inside their line.
    """

    lines = extract_cedict_text(path).split("\n")
    if lines and not lines[-1]:
        lines.pop()
    return lines
