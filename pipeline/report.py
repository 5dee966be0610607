# WORKFLOW: Plain-text transformation report written next to the output archive.
# Used by: Transformation service

import logging
from pathlib import Path
from typing import Iterable, Optional

from pipeline.models import ArchiveAnalysis

logger = logging.getLogger(__name__)

UNKNOWN = "onbekend"


def render_report(analysis: ArchiveAnalysis, output_path: str, files: Iterable[str],
                  goal_id: Optional[str] = None) -> str:
    lines = [
        "Rapport STOP Package Transformer",
        "================================",
        "",
        f"Output: {output_path}",
        f"FRBR Work: {analysis.work_id or UNKNOWN}",
        f"FRBR Expression: {analysis.expression_id or UNKNOWN}",
        f"Bevoegd gezag: {analysis.authority_code or UNKNOWN}",
        f"Aantal informatieobjecten: {analysis.information_object_count}",
    ]
    if goal_id:
        lines.append(f"Doel-ID: {goal_id}")
    lines.append("")
    lines.append("Bestanden in resultaat:")
    lines.extend(f"- {name}" for name in sorted(files, key=str.lower))
    return "\n".join(lines) + "\n"


def write_report(path: str, analysis: ArchiveAnalysis, output_path: str, files: Iterable[str],
                 goal_id: Optional[str] = None) -> str:
    """Write the report as UTF-8 and return its path."""
    Path(path).write_text(render_report(analysis, output_path, files, goal_id), encoding="utf-8")
    logger.info(f"Report written to {path}")
    return path
