"""Output formatters for sync reports."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path

from modsync.reporting.report import SyncResult


def to_json(result: SyncResult, indent: int = 2) -> str:
    """Format result as JSON string."""
    return json.dumps(result.to_dict(), indent=indent, default=str, ensure_ascii=False)


def to_markdown(result: SyncResult) -> str:
    """Format result as Markdown."""
    lines = [
        "# Sync Report",
        "",
        "| Metric | Count |",
        "|--------|-------|",
        f"| Scanned | {result.scanned_count} |",
        f"| Synced | {result.synced_count} |",
        f"| Translated | {result.translated_count} |",
        f"| Errors | {result.error_count} |",
        f"| Cancelled | {result.cancelled} |",
        f"| Duration | {result.duration_seconds:.1f}s |",
    ]

    if result.synced_items:
        lines.extend([
            "",
            "## Items",
            "",
            "| ID | Language | Title |",
            "|----|----------|-------|",
        ])
        for item in result.synced_items:
            title = item.display_title.replace("|", "\\|")
            lines.append(f"| {item.id} | {item.language or 'unknown'} | {title} |")

    if result.errors:
        lines.extend([
            "",
            "## Errors",
            "",
        ])
        for err in result.errors:
            lines.append(f"- {err}")

    return "\n".join(lines) + "\n"


def to_csv(result: SyncResult) -> str:
    """Format result as a single-row CSV."""
    output = io.StringIO()
    data = result.to_dict()
    # Flatten list fields
    data["synced_ids"] = " ".join(data["synced_ids"])
    data["errors"] = "; ".join(data["errors"])
    writer = csv.DictWriter(output, fieldnames=data.keys())
    writer.writeheader()
    writer.writerow(data)
    return output.getvalue()


def save_report(result: SyncResult, path: str | Path) -> None:
    """Save result to file, auto-detecting format from extension."""
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix in (".md", ".markdown"):
        content = to_markdown(result)
    elif suffix == ".csv":
        content = to_csv(result)
    else:
        content = to_json(result)

    path.write_text(content, encoding="utf-8")
