"""
Reconstruct structured records from text and HTML copied out of AISIS.

Entry points:
- :func:`parse_curriculum` (text or HTML), :func:`parse_curriculum_text`,
  :func:`parse_curriculum_html`
- :func:`parse_weekly_schedule` for the personal "My Class Schedule" grid
- :func:`parse_schedule_table` for department class-schedule tables
- :func:`parse_grades` for the grades listing
"""
from __future__ import annotations

__version__ = "0.1.0"

from .curriculum import parse_curriculum_text
from .curriculum_html import parse_curriculum, parse_curriculum_html
from .export import export
from .grades import parse_grades
from .schedule_table import parse_schedule_table
from .time_pattern import parse_time_segments
from .weekly_schedule import parse_weekly_schedule

__all__ = [
    "__version__",
    "export",
    "parse_curriculum",
    "parse_curriculum_html",
    "parse_curriculum_text",
    "parse_grades",
    "parse_schedule_table",
    "parse_time_segments",
    "parse_weekly_schedule",
]
