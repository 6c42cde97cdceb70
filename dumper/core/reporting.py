# -*- coding: utf-8 -*-
from __future__ import annotations

import html
import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Tuple

from dumper.config import APP_NAME, APP_VERSION, HTML_REPORT_FILENAME, REPORT_FILENAME
from dumper.errors import ReportWriteError
from dumper.models import RunIssue, RunStats


@dataclass(frozen=True)
class CategorySnapshot:
    name: str
    files: Tuple[str, ...]
    sizes: Tuple[int, ...]
    total_size: int
    count: int


@dataclass(frozen=True)
class RunReport:
    timestamp: str
    source: str
    destination: str
    total_files: int
    copied_files: int
    failed_files: int
    resources: Dict[str, CategorySnapshot]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _esc(s: Any) -> str:
    return html.escape("" if s is None else str(s))


def build_report(stats: RunStats, source_path: str, destination_path: str) -> RunReport:
    resources: Dict[str, CategorySnapshot] = {}
    for key, result in stats.per_category.items():
        resources[key.value] = CategorySnapshot(
            name=result.category.display_name,
            files=tuple(m.path for m in result.matches),
            sizes=tuple(m.size_bytes for m in result.matches),
            total_size=result.total_bytes,
            count=result.match_count,
        )

    return RunReport(
        timestamp=_utc_now(),
        source=str(Path(source_path).resolve()),
        destination=str(Path(destination_path).resolve()),
        total_files=stats.total_files_scanned,
        copied_files=stats.files_copied,
        failed_files=stats.files_failed,
        resources=resources,
    )


def report_to_json_dict(report: RunReport) -> Dict[str, Any]:
    return {
        "timestamp": report.timestamp,
        "source": report.source,
        "destination": report.destination,
        "totalFiles": report.total_files,
        "copiedFiles": report.copied_files,
        "failedFiles": report.failed_files,
        "resources": {
            key: {
                "name": snap.name,
                "files": list(snap.files),
                "totalSize": snap.total_size,
                "count": snap.count,
            }
            for key, snap in report.resources.items()
        },
    }


def _write_text(path: Path, text: str) -> str:
    # Undecodable file names come back from os.scandir as lone surrogates;
    # surrogateescape writes their original bytes back out.
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(text, encoding="utf-8", errors="surrogateescape")
        os.replace(tmp, path)
    except (OSError, UnicodeError) as e:
        try:
            tmp.unlink()
        except OSError:
            pass
        raise ReportWriteError(f"Could not write report {path}: {e}") from e
    return str(path)


def write_report(report: RunReport, destination_path: str) -> str:
    """Write <destination>/dump-report.json and return its path."""
    text = json.dumps(report_to_json_dict(report), indent=2, ensure_ascii=False)
    return _write_text(Path(destination_path) / REPORT_FILENAME, text)


# -------------------------
# Presentation
# -------------------------

_UNITS = ("B", "KB", "MB", "GB", "TB")

_PILL_CLASSES = {"ERROR": "err", "WARNING": "warn"}


def format_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    size = float(num_bytes)
    for unit in _UNITS[1:-1]:
        size /= 1024
        if size < 1024:
            return f"{size:.2f} {unit}"
    return f"{size / 1024:.2f} {_UNITS[-1]}"


def run_succeeded(report: RunReport) -> bool:
    return report.failed_files == 0


def summary_lines(report: RunReport) -> List[str]:
    lines = [f"Resources dumped from {report.source} to {report.destination}"]
    for key, snap in report.resources.items():
        lines.append(f"  {snap.name} ({key}): {snap.count} file(s), {format_size(snap.total_size)}")
    lines.append(
        f"Total: {report.total_files} matched, {report.copied_files} copied, {report.failed_files} failed"
    )
    if run_succeeded(report):
        lines.append("Dump completed successfully.")
    else:
        lines.append(f"Dump completed with errors ({report.failed_files} file(s) failed).")
    return lines


def build_report_html(report: RunReport, issues: List[RunIssue]) -> str:
    css = """
    body { font-family: system-ui, sans-serif; margin: 20px 28px; color: #222; }
    h2 { font-size: 16px; margin: 0 0 4px 0; }
    .sub, .small { color: #555; font-size: 12px; }
    .card { border: 1px solid #d8d8d8; border-radius: 6px; padding: 12px 16px; margin: 14px 0; }
    .row { display: flex; flex-wrap: wrap; gap: 24px; }
    .kv { min-width: 180px; }
    .k { color: #777; font-size: 11px; text-transform: uppercase; }
    .v { font-weight: 600; }
    table { width: 100%; border-collapse: collapse; }
    th, td { padding: 6px 8px; border-bottom: 1px solid #eee; text-align: left; font-size: 13px; }
    .pill { padding: 1px 7px; border-radius: 8px; font-size: 11px; font-weight: 700; }
    .err { background: #fbe3e3; color: #8a0000; }
    .warn { background: #fdf1cf; color: #6b4a00; }
    .info { background: #e4effc; color: #0b3d7a; }
    code { background: #f3f3f3; padding: 0 3px; }
    """

    def pill(level: str) -> str:
        lvl = level.upper()
        cls = _PILL_CLASSES.get(lvl, "info")
        return f'<span class="pill {cls}">{_esc(lvl)}</span>'

    issue_rows = "".join(
        f"<tr><td>{pill(i.level)}</td><td><code>{_esc(i.code)}</code></td><td>{_esc(i.message)}</td></tr>"
        for i in issues
    )
    issues_html = (
        "<table><thead><tr><th>Level</th><th>Code</th><th>Message</th></tr></thead>"
        f"<tbody>{issue_rows}</tbody></table>"
        if issues
        else "<p class='small'>No issues.</p>"
    )

    sections = []
    for key, snap in report.resources.items():
        rows = "".join(
            f"<tr><td class='small'><code>{_esc(path)}</code></td><td class='small'>{_esc(format_size(size))}</td></tr>"
            for path, size in zip(snap.files, snap.sizes)
        ) or '<tr><td colspan="2" class="small">No files matched.</td></tr>'
        sections.append(
            f"""
  <div class="card">
    <h2>{_esc(snap.name)} <code>{_esc(key)}</code></h2>
    <p class="small">{snap.count} file(s), {_esc(format_size(snap.total_size))}</p>
    <table>
      <thead><tr><th>File</th><th>Size</th></tr></thead>
      <tbody>{rows}</tbody>
    </table>
  </div>"""
        )

    status = "Completed" if run_succeeded(report) else "Completed with errors"

    return f"""
<!doctype html>
<html>
<head>
  <meta charset="utf-8">
  <title>{_esc(APP_NAME)} Report - {_esc(report.timestamp)}</title>
  <style>{css}</style>
</head>
<body>
  <h1>{_esc(APP_NAME)} - Dump Report</h1>
  <p class="sub">Generated {_esc(report.timestamp)} (UTC) - Tool version {_esc(APP_VERSION)}</p>

  <div class="card">
    <div class="row">
      <div class="kv"><div class="k">Status</div><div class="v">{_esc(status)}</div></div>
      <div class="kv"><div class="k">Matched</div><div class="v">{report.total_files}</div></div>
      <div class="kv"><div class="k">Copied</div><div class="v">{report.copied_files}</div></div>
      <div class="kv"><div class="k">Failed</div><div class="v">{report.failed_files}</div></div>
    </div>
    <div class="row" style="margin-top:10px;">
      <div class="kv" style="min-width:420px;"><div class="k">Source</div><div class="v"><code>{_esc(report.source)}</code></div></div>
      <div class="kv" style="min-width:420px;"><div class="k">Destination</div><div class="v"><code>{_esc(report.destination)}</code></div></div>
    </div>
  </div>

  <div class="card">
    <h2>Issues</h2>
    {issues_html}
  </div>
{''.join(sections)}
</body>
</html>
"""


def write_report_html(html_text: str, destination_path: str) -> str:
    return _write_text(Path(destination_path) / HTML_REPORT_FILENAME, html_text)
