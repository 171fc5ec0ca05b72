from pathlib import Path
from typing import Any, Mapping

from jinja2 import Environment, FileSystemLoader, select_autoescape

from procarni.export.formatting import format_date, format_datetime, short_id
from procarni.web.jinja_filters import format_money, format_number_ve, format_quantity

# procarni/
#   templates.py  (this file)
#   templates/
#     purchase_order.html
#     email/document.html

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)
_env.filters.update(
    money=format_money,
    number=format_number_ve,
    quantity=format_quantity,
    datetime=format_datetime,
    date=format_date,
    short_id=short_id,
)


def render_template(name: str, context: Mapping[str, Any]) -> str:
    """
    Render a Jinja2 template to an HTML string.

    Example:
        html = render_template("purchase_order.html", {"order": order})
    """
    template = _env.get_template(name)
    return template.render(**context)
