"""
Output Writer - Exports the accepted job batch to JSON and Markdown
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .models import NOT_AVAILABLE, JobRecord, SearchContext

logger = logging.getLogger(__name__)


class OutputWriter:
    """Handles exporting job data to various formats"""

    def __init__(self, config):
        self.config = config

    def _escape_md_cell(self, value: str) -> str:
        return (value or "").replace("|", "\\|").replace("\n", " ").strip()

    def _truncate(self, text: str, max_len: int) -> str:
        value = (text or "").strip()
        if len(value) <= max_len:
            return value
        return value[: max_len - 3].rstrip() + "..."

    def _ensure_output_dir(self, path: Path) -> None:
        """Create output directory if it doesn't exist"""
        path.parent.mkdir(parents=True, exist_ok=True)

    def write_json(self, jobs: List[JobRecord], path: Optional[Path] = None) -> Path:
        """Export jobs to JSON file as a plain array of records"""
        output_path = path or self.config.get_output_path('json')
        self._ensure_output_dir(output_path)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump([job.to_json_dict() for job in jobs], f, indent=2, ensure_ascii=False)

        logger.info(f"JSON written: {output_path} ({len(jobs)} jobs)")
        print(f"💾 JSON saved: {output_path}")
        return output_path

    def _grid_table(self, jobs: List[JobRecord]) -> List[str]:
        cols = ["#", "Title", "Company", "Location", "Experience", "Salary", "Apply"]
        lines = [
            "| " + " | ".join(cols) + " |",
            "| " + " | ".join(["---"] * len(cols)) + " |",
        ]
        for i, job in enumerate(jobs, 1):
            title = self._escape_md_cell(self._truncate(job.title, 80))
            row = [
                str(i),
                f"[{title}]({job.url})",
                self._escape_md_cell(job.company),
                self._escape_md_cell(job.location),
                self._escape_md_cell(job.experience),
                self._escape_md_cell(job.salary),
                job.application_type.value,
            ]
            lines.append("| " + " | ".join(row) + " |")
        lines.append("")
        return lines

    def write_markdown(self, jobs: List[JobRecord], search: SearchContext) -> Path:
        """Export jobs to Markdown file"""
        output_path = self.config.get_output_path('markdown')
        self._ensure_output_dir(output_path)

        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M')
        lines = [
            f"# Naukri Jobs: {search.query} in {search.location} ({timestamp})\n",
            f"**Total Jobs:** {len(jobs)}  ",
            f"**Experience filter:** {search.experience}  ",
            f"**Generated:** {timestamp}\n",
            "---\n",
            "## Job Listings\n",
        ]

        if not jobs:
            lines.append("*No jobs found.*\n")
        for i, job in enumerate(jobs, 1):
            lines.append(f"### {i}. {job.title}\n")
            lines.append(f"**Company:** {job.company}  ")
            lines.append(f"**Location:** {job.location}  ")
            lines.append(f"**Experience:** {job.experience}  ")
            lines.append(f"**Salary:** {job.salary}  ")
            lines.append(f"**Application:** {job.application_type.value}  ")
            if job.skills != NOT_AVAILABLE:
                lines.append(f"**Skills:** {job.skills}  ")
            lines.append(f"**Link:** [{job.title}]({job.url})\n")
            if job.description != NOT_AVAILABLE:
                lines.append(f"> {self._truncate(job.description.replace(chr(10), ' '), 300)}\n")
            lines.append("")

        lines.append("---\n")
        lines.append("## Job Details Grid\n")
        lines.extend(self._grid_table(jobs))

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write('\n'.join(lines))

        logger.info(f"Markdown written: {output_path}")
        print(f"📝 Markdown saved: {output_path}")
        return output_path
