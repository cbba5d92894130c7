from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, List, Sequence

from banreview.datatypes.review_datatypes import REPORT_HEADER, Verdict
from banreview.util.logger import get_logger

logger = get_logger("csv_report")

FULL_REPORT_NAME = "language_ban_review.csv"
UNBAN_REPORT_NAME = "unban_only.csv"
RUN_LOG_NAME = "log.txt"


def write_verdicts(verdicts: Iterable[Verdict], destination: Path, *, append: bool) -> int:
    """Write verdict rows, with a header only when starting a fresh file."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    rows = [verdict.as_row() for verdict in verdicts]
    with destination.open("a" if append else "w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        if not append:
            writer.writerow(REPORT_HEADER)
        writer.writerows(rows)
    return len(rows)


class ReportWriter:
    """Persist per-page verdicts to the full and unban-only reports."""

    def __init__(self, result_dir: Path) -> None:
        self.result_dir = result_dir

    @property
    def full_report_path(self) -> Path:
        return self.result_dir / FULL_REPORT_NAME

    @property
    def unban_report_path(self) -> Path:
        return self.result_dir / UNBAN_REPORT_NAME

    @property
    def run_log_path(self) -> Path:
        return self.result_dir / RUN_LOG_NAME

    def reset(self) -> List[Path]:
        """Remove outputs of a previous run and return what was deleted."""
        self.result_dir.mkdir(parents=True, exist_ok=True)
        removed: List[Path] = []
        for path in (self.full_report_path, self.unban_report_path, self.run_log_path):
            if path.exists():
                path.unlink()
                removed.append(path)
        return removed

    def write_page(self, verdicts: Sequence[Verdict], *, append: bool) -> None:
        write_verdicts(verdicts, self.full_report_path, append=append)
        write_verdicts(
            [verdict for verdict in verdicts if verdict.unban_recommended],
            self.unban_report_path,
            append=append,
        )
