# Overview: Markdown and printable HTML export of a datasheet; read-only consumer of the product repository.

from __future__ import annotations

import re
from datetime import date, datetime

from flask import render_template

from ..models import Product

MARKDOWN_TEMPLATES = {
    "cosmetic": "exports/cosmetic_sheet.md",
    "supplement": "exports/supplement_sheet.md",
}

HTML_TEMPLATES = {
    "cosmetic": "exports/cosmetic_sheet.html",
    "supplement": "exports/supplement_sheet.html",
}


def format_sheet_date(value: str | None) -> str:
    """dd/mm/yyyy for ISO dates, the raw text otherwise, today when empty."""
    if not value or not value.strip():
        return date.today().strftime("%d/%m/%Y")
    try:
        return datetime.fromisoformat(value.strip()).strftime("%d/%m/%Y")
    except ValueError:
        return value.strip()


def export_filename(product: Product, extension: str = "md") -> str:
    slug = re.sub(r"\s+", "-", (product.name or "prodotto").strip()).lower()
    return f"scheda-tecnica-{slug}.{extension}"


def _render(templates: dict, product: Product) -> str:
    template = templates.get(product.type)
    if template is None:
        raise ValueError(f"Unsupported product type: {product.type}")

    return render_template(
        template,
        product=product,
        details=product.details,
        sheet_date=format_sheet_date(product.date),
    )


def render_markdown(product: Product) -> str:
    """
    Render the datasheet as Markdown.

    A missing detail record renders empty placeholders instead of failing.
    """
    return _render(MARKDOWN_TEMPLATES, product)


def render_html(product: Product) -> str:
    """
    Render the datasheet as a standalone HTML page meant for printing.

    .html templates are autoescaped, so field values cannot inject markup.
    """
    return _render(HTML_TEMPLATES, product)
