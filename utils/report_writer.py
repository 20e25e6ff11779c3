# -*- coding: utf-8 -*-
"""
Narrative report assembly.

A report is an ordered list of sections; each section carries prose, tables and
chart paths. The same content renders to Markdown (tables through
DataFrame.to_markdown) and to a standalone HTML page (Jinja2 template,
DataFrame.to_html). Chart links are written relative to the report file.
"""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import pandas as pd
from jinja2 import Environment, FileSystemLoader, select_autoescape
from loguru import logger

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


@dataclass
class ReportTable:
    caption: str
    frame: pd.DataFrame
    max_rows: Optional[int] = 20


@dataclass
class ReportSection:
    title: str
    paragraphs: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    tables: List[ReportTable] = field(default_factory=list)
    images: List[str] = field(default_factory=list)


def _format_frame(frame: pd.DataFrame, max_rows: Optional[int]) -> pd.DataFrame:
    """Rounds floats for display and truncates long tables."""
    shown = frame.head(max_rows) if max_rows else frame
    shown = shown.copy()
    for col in shown.select_dtypes(include=['float']).columns:
        shown[col] = shown[col].round(3)
    return shown


class SurveyReport:
    """Collects narrative sections and renders them as Markdown or HTML."""

    def __init__(self, title: str, subtitle: str = ""):
        self.title = title
        self.subtitle = subtitle
        self.sections: List[ReportSection] = []

    def add_section(self, title: str, paragraphs=None) -> ReportSection:
        section = ReportSection(title=title, paragraphs=list(paragraphs or []))
        self.sections.append(section)
        return section

    def add_table(self, section: ReportSection, caption: str, frame: pd.DataFrame, max_rows: Optional[int] = 20):
        if frame is None or frame.empty:
            section.notes.append(f"{caption}: no data with enough respondents.")
            return
        section.tables.append(ReportTable(caption=caption, frame=frame, max_rows=max_rows))

    def add_images(self, section: ReportSection, paths):
        for p in paths or []:
            if p and os.path.exists(p):
                section.images.append(str(p))

    @staticmethod
    def _relative(path: str, base_dir: Path) -> str:
        return Path(os.path.relpath(path, base_dir)).as_posix()

    def to_markdown(self, base_dir: str | Path = ".") -> str:
        base_dir = Path(base_dir)
        lines = [f"# {self.title}", ""]
        if self.subtitle:
            lines.extend([f"_{self.subtitle}_", ""])

        for section in self.sections:
            lines.extend([f"## {section.title}", ""])
            for paragraph in section.paragraphs:
                lines.extend([paragraph, ""])
            for note in section.notes:
                lines.extend([f"_{note}_", ""])
            for table in section.tables:
                lines.append(f"**{table.caption}**")
                lines.append("")
                lines.append(_format_frame(table.frame, table.max_rows).to_markdown(index=False))
                if table.max_rows and len(table.frame) > table.max_rows:
                    lines.append(f"_Showing {table.max_rows} of {len(table.frame)} rows._")
                lines.append("")
            for image in section.images:
                if image.endswith('.html'):
                    lines.append(f"[Interactive chart]({self._relative(image, base_dir)})")
                else:
                    name = Path(image).stem.replace('_', ' ')
                    lines.append(f"![{name}]({self._relative(image, base_dir)})")
                lines.append("")
        return "\n".join(lines)

    def to_html(self, base_dir: str | Path = ".") -> str:
        base_dir = Path(base_dir)
        env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=select_autoescape(['html', 'j2']))
        template = env.get_template("report.html.j2")
        sections = []
        for section in self.sections:
            sections.append({
                'title': section.title,
                'paragraphs': section.paragraphs,
                'notes': section.notes,
                'tables': [
                    {
                        'caption': t.caption,
                        'html': _format_frame(t.frame, t.max_rows).to_html(index=False, classes='table', border=0),
                        'truncated': bool(t.max_rows and len(t.frame) > t.max_rows),
                        'total_rows': len(t.frame),
                        'max_rows': t.max_rows,
                    }
                    for t in section.tables
                ],
                'images': [
                    {'src': self._relative(p, base_dir), 'alt': Path(p).stem.replace('_', ' '),
                     'interactive': p.endswith('.html')}
                    for p in section.images
                ],
            })
        return template.render(title=self.title, subtitle=self.subtitle, sections=sections)

    def save(self, output_dir: str | Path, render_html: bool = True) -> List[str]:
        """Writes report.md (and report.html) into `output_dir`; returns the written paths."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        written = []

        md_path = output_dir / "report.md"
        md_path.write_text(self.to_markdown(output_dir), encoding="utf-8")
        written.append(str(md_path))

        if render_html:
            html_path = output_dir / "report.html"
            html_path.write_text(self.to_html(output_dir), encoding="utf-8")
            written.append(str(html_path))

        logger.success(f"Report written: {', '.join(written)}")
        return written
