"""Dated entry log.

Entries are kept newest first:

    ## 2026-10-19
    Today will be a good day if: ...
    I will do this by: ...
    Everything else can wait.

"""

import logging
import os
import re
import tempfile
from datetime import date
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger("today.journal")

_HEADER_RE = re.compile(r"^## \d{4}-\d{2}-\d{2}$", re.MULTILINE)


def format_entry(refined: str, day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"## {day.isoformat()}\n{refined.strip()}\n\n"


def read_today_file(output_file: Union[str, Path]) -> str:
    path = Path(output_file).expanduser()
    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8")


def write_today_file(
    refined: str,
    output_file: Union[str, Path],
    day: Optional[date] = None,
) -> Path:
    """Prepend a dated entry to the output file.

    The whole file is rewritten through a temp file and rename. Concurrent
    writers are not coordinated; the last one wins.
    """
    path = Path(output_file).expanduser()
    existing = read_today_file(path)
    content = format_entry(refined, day) + existing

    # mkstemp creates 0o600; keep the log's existing mode
    mode = path.stat().st_mode & 0o777 if path.exists() else 0o644

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp", prefix=".today-")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, str(path))
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise

    logger.debug("Wrote entry to %s", path)
    return path


def count_entries(content: str) -> int:
    """Number of dated headers in the log content."""
    return len(_HEADER_RE.findall(content))
