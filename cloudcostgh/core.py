from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from costdelta.delta import Delta, compute_delta
from costdelta.render import DEFAULT_TITLE, render_markdown
from costdelta.report import index_report
from costdelta.schemas import CostReport


class ReportError(Exception):
    """Raised when an analyzer report file cannot be read or validated."""


@dataclass(frozen=True)
class Comparison:
    delta: Delta
    markdown: str

    @property
    def base_total(self) -> float:
        return self.delta.total.base

    @property
    def head_total(self) -> float:
        return self.delta.total.head

    @property
    def delta_total(self) -> float:
        return self.delta.total.diff


def load_report(path: str | Path) -> CostReport:
    """Read and validate an analyzer JSON report.

    Raises ReportError if the file is missing, empty, not JSON, or does not
    match the report schema.
    """
    path = Path(path)
    if not path.exists():
        raise ReportError(f"Report file does not exist: {path}")

    raw = path.read_text(encoding="utf-8")
    if not raw.strip():
        raise ReportError(f"Report file is empty: {path}")

    try:
        return CostReport.model_validate(json.loads(raw))
    except json.JSONDecodeError as e:
        raise ReportError(f"Report file is not valid JSON: {path}: {e}") from e
    except ValidationError as e:
        raise ReportError(f"Report file does not match the analyzer schema: {path}: {e}") from e


def compare_reports(base: CostReport, head: CostReport, title: str = DEFAULT_TITLE) -> Comparison:
    delta = compute_delta(index_report(base), index_report(head))
    return Comparison(delta=delta, markdown=render_markdown(delta, title))


def compare_report_files(base_path: str | Path, head_path: str | Path,
                         title: str = DEFAULT_TITLE) -> Comparison:
    return compare_reports(load_report(base_path), load_report(head_path), title)
