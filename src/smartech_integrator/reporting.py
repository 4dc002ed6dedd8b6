from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from . import __version__
from .models import Change, IntegrationPlan

JSON_SNAPSHOT_NAME = "smartech_plan.json"
MARKDOWN_REPORT_NAME = "smartech_plan_report.md"


def build_run_metadata(plan: IntegrationPlan, typer_version: str = "unknown") -> Dict[str, Any]:
    return {
        "tool_version": __version__,
        "typer_version": typer_version,
        "timestamp_utc": datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
        "root_path": plan.scan.root_path,
    }


def write_json_snapshot(output_dir: Path, plan: IntegrationPlan) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / JSON_SNAPSHOT_NAME
    with output_path.open("w", encoding="utf-8") as fp:
        json.dump(plan.to_dict(), fp, indent=2, sort_keys=True)
        fp.write("\n")
    return output_path


def write_markdown_report(
    output_dir: Path, plan: IntegrationPlan, typer_version: str = "unknown"
) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    report_path = output_dir / MARKDOWN_REPORT_NAME
    lines: List[str] = []
    lines.append("# Smartech Integration Plan")
    lines.append("")

    run_metadata = build_run_metadata(plan, typer_version)
    lines.append("## Run Metadata")
    lines.append(f"- Timestamp (UTC): {run_metadata['timestamp_utc']}")
    lines.append(f"- Tool version: {run_metadata['tool_version']}")
    lines.append(f"- Typer version: {run_metadata['typer_version']}")
    lines.append(f"- Project root: {run_metadata['root_path']}")
    lines.append(f"- Parts: {', '.join(plan.parts) or 'none'}")
    lines.append("")

    scan = plan.scan
    lines.append("## Project Scan")
    lines.append(f"- Platforms: {', '.join(scan.platforms) or 'none'}")
    lines.append(f"- React Native version: {scan.react_native_version or 'n/a'}")
    if scan.notes:
        lines.append("- Notes:")
        for note in scan.notes:
            lines.append(f"  - {note}")
    lines.append("")

    lines.append("## Changes")
    if not plan.changes:
        lines.append("- Nothing to change: the project is already integrated.")
        lines.append("")
    for module, changes in _group_by_module(plan.changes).items():
        lines.append(f"### {module}")
        lines.append("")
        lines.append("| ID | Kind | File | Confidence | Title |")
        lines.append("| --- | --- | --- | --- | --- |")
        for change in changes:
            kind = "manual" if change.is_advisory else change.kind
            lines.append(
                f"| {change.id} | {kind} | {change.file_path} | {change.confidence:.2f} | {_escape_cell(change.title)} |"
            )
        lines.append("")

    lines.extend(_detail_lines(plan.changes))

    advisories = [change for change in plan.changes if change.is_advisory]
    if advisories:
        lines.append("## Manual Steps")
        for change in advisories:
            lines.append(f"- {change.title}: {change.summary}")
        lines.append("")

    with report_path.open("w", encoding="utf-8", errors="backslashreplace") as fp:
        fp.write("\n".join(lines) + "\n")
    return report_path


def _group_by_module(changes: List[Change]) -> Dict[str, List[Change]]:
    grouped: Dict[str, List[Change]] = {}
    for change in changes:
        grouped.setdefault(change.module, []).append(change)
    return grouped


def _detail_lines(changes: List[Change]) -> List[str]:
    lines: List[str] = []
    if not changes:
        return lines
    lines.append("## Details")
    lines.append("")
    for change in changes:
        lines.append(f"### {change.id}")
        lines.append(change.summary)
        lines.append("")
        if change.patch:
            lines.append("```diff")
            lines.append(change.patch.rstrip("\n"))
            lines.append("```")
            lines.append("")
        if change.manual_snippet:
            lines.append("Manual snippet:")
            lines.append("")
            lines.append("```")
            lines.append(change.manual_snippet.rstrip("\n"))
            lines.append("```")
            lines.append("")
    return lines


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|")
