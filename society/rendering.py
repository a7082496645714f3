"""
Jinja2 environment for receipts, reports and email bodies.
"""

from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

templates = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)


def format_day(value: Optional[Any]) -> str:
    """Receipt-style date, e.g. "March 05, 2026"."""
    if value is None:
        value = datetime.now()
    if isinstance(value, (datetime, date)):
        return value.strftime("%B %d, %Y")
    return str(value)


def render(template_name: str, **context: Any) -> str:
    return templates.get_template(template_name).render(**context)
