from __future__ import annotations

import html
import logging
import math
from pathlib import Path
from typing import Any

from playwright.sync_api import sync_playwright

from backend.core.config import load_normalization_config, neighbor_delta_degrees, resolve_evaluation_year
from backend.core.models import IdealityResult, NeighborhoodStats, NormalizationConfig, ScoreBreakdown
from backend.core.normalize import property_from_record
from backend.core.scoring import compute_ideality, round_half_up
from backend.core.supabase_repo import SupabaseRepo


LOGGER = logging.getLogger(__name__)

CHART_SERIES = (
    ("price", "Price", "#ef4444"),
    ("features", "Features", "#f59e0b"),
    ("location", "Location", "#10b981"),
    ("safety", "Safety", "#3b82f6"),
    ("schools", "Schools", "#8b5cf6"),
    ("commute", "Commute", "#ec4899"),
)
PDF_MARGIN = {"top": "20mm", "right": "20mm", "bottom": "20mm", "left": "20mm"}


def neighborhood_stats(subject: dict[str, Any], neighbors: list[dict[str, Any]]) -> NeighborhoodStats:
    """
    Averages over neighbours only; with no neighbours the subject's own values are reported.
    """
    prices = [float(n["price"]) for n in neighbors if n.get("price") is not None]
    sizes = [float(n["sqft"]) for n in neighbors if n.get("sqft") is not None]
    types: dict[str, int] = {}
    for neighbor in neighbors:
        kind = neighbor.get("type") or "unknown"
        types[kind] = types.get(kind, 0) + 1
    return NeighborhoodStats(
        average_price=round_half_up(sum(prices) / len(prices)) if prices else round_half_up(float(subject["price"])),
        average_sqft=round_half_up(sum(sizes) / len(sizes)) if sizes else round_half_up(float(subject["sqft"])),
        total_properties=len(neighbors) + 1,
        property_types=types,
    )


def bar_chart_svg(breakdown: ScoreBreakdown, width: int = 400, height: int = 300) -> str:
    chart_x, chart_y = 25, 50
    chart_width, chart_height = width - 50, height - 100
    bar_width = chart_width / len(CHART_SERIES)
    values = breakdown.to_dict()

    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" viewBox="0 0 {width} {height}">',
        f'<rect width="{width}" height="{height}" fill="#ffffff"/>',
        f'<text x="{width / 2}" y="25" text-anchor="middle" font-size="16" font-weight="bold" fill="#1f2937">'
        "Ideality Score Breakdown</text>",
    ]
    for step in range(6):
        y = chart_y + chart_height / 5 * step
        parts.append(
            f'<line x1="{chart_x}" y1="{y}" x2="{chart_x + chart_width}" y2="{y}" stroke="#e5e7eb" stroke-width="1"/>'
        )
        parts.append(
            f'<text x="{chart_x - 5}" y="{y + 3}" text-anchor="end" font-size="10" fill="#6b7280">{(5 - step) * 20}</text>'
        )
    for index, (key, label, color) in enumerate(CHART_SERIES):
        value = max(0, min(100, values[key]))
        bar_height = value / 100 * chart_height
        x = chart_x + index * bar_width
        y = chart_y + chart_height - bar_height
        center = x + bar_width / 2
        parts.append(f'<rect x="{x + 5}" y="{y}" width="{bar_width - 10}" height="{bar_height}" fill="{color}"/>')
        parts.append(
            f'<text x="{center}" y="{y - 5}" text-anchor="middle" font-size="12" font-weight="bold" fill="#1f2937">'
            f"{values[key]}</text>"
        )
        parts.append(
            f'<text x="{center}" y="{chart_y + chart_height + 20}" text-anchor="middle" font-size="11" fill="#6b7280">'
            f"{label}</text>"
        )
    parts.append("</svg>")
    return "".join(parts)


def pie_chart_svg(breakdown: ScoreBreakdown, size: int = 300) -> str:
    cx = cy = size / 2
    radius = 100
    values = breakdown.to_dict()
    total = sum(max(0, values[key]) for key, _, _ in CHART_SERIES)

    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" viewBox="0 0 {size} {size}">',
        f'<rect width="{size}" height="{size}" fill="#ffffff"/>',
        f'<text x="{cx}" y="25" text-anchor="middle" font-size="16" font-weight="bold" fill="#1f2937">'
        "Score Distribution</text>",
    ]
    if total <= 0:
        parts.append(f'<circle cx="{cx}" cy="{cy}" r="{radius}" fill="#e5e7eb"/>')
        parts.append("</svg>")
        return "".join(parts)

    angle = -math.pi / 2
    for key, label, color in CHART_SERIES:
        value = max(0, values[key])
        if value == 0:
            continue
        share = value / total
        sweep = share * 2 * math.pi
        if share >= 1:
            parts.append(f'<circle cx="{cx}" cy="{cy}" r="{radius}" fill="{color}"/>')
        else:
            x1, y1 = cx + radius * math.cos(angle), cy + radius * math.sin(angle)
            x2, y2 = cx + radius * math.cos(angle + sweep), cy + radius * math.sin(angle + sweep)
            large_arc = 1 if sweep > math.pi else 0
            parts.append(
                f'<path d="M {cx} {cy} L {x1:.2f} {y1:.2f} A {radius} {radius} 0 {large_arc} 1 {x2:.2f} {y2:.2f} Z" '
                f'fill="{color}" stroke="#ffffff" stroke-width="2"/>'
            )
        mid = angle + sweep / 2
        label_x, label_y = cx + math.cos(mid) * (radius + 20), cy + math.sin(mid) * (radius + 20)
        parts.append(
            f'<text x="{label_x:.2f}" y="{label_y:.2f}" text-anchor="middle" font-size="12" font-weight="bold" '
            f'fill="#1f2937">{label}</text>'
        )
        parts.append(
            f'<text x="{label_x:.2f}" y="{label_y + 15:.2f}" text-anchor="middle" font-size="10" fill="#6b7280">'
            f"{round_half_up(share * 100)}%</text>"
        )
        angle += sweep
    parts.append("</svg>")
    return "".join(parts)


def render_report_html(row: dict[str, Any], result: IdealityResult, stats: NeighborhoodStats) -> str:
    title = html.escape(str(row.get("title") or f"Property {row.get('id')}"))
    facts = (
        ("Price", _money(row.get("price"))),
        ("Square feet", _number(row.get("sqft"))),
        ("Bedrooms", _number(row.get("beds"))),
        ("Bathrooms", _number(row.get("baths"))),
        ("Year built", row.get("year_built")),
        ("Type", row.get("type")),
        ("Commute", _minutes(row.get("commute_minutes"))),
    )
    fact_rows = "".join(
        f"<tr><th>{label}</th><td>{html.escape(str(value if value is not None else '-'))}</td></tr>"
        for label, value in facts
    )
    breakdown = result.breakdown.to_dict()
    breakdown_rows = "".join(
        f"<tr><th>{label}</th><td>{breakdown[key]}</td></tr>" for key, label, _ in CHART_SERIES
    )
    type_rows = "".join(
        f"<li>{html.escape(kind)}: {count}</li>" for kind, count in sorted(stats.property_types.items())
    ) or "<li>No nearby listings</li>"

    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>Property Report - {title}</title>
    <style>
      * {{ margin: 0; padding: 0; box-sizing: border-box; }}
      body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
      h1 {{ font-size: 24px; margin-bottom: 8px; }}
      h2 {{ font-size: 18px; margin: 20px 0 8px; }}
      table {{ border-collapse: collapse; }}
      th {{ text-align: left; padding-right: 16px; color: #6b7280; font-weight: normal; }}
      .score {{ font-size: 40px; font-weight: bold; color: #2563eb; }}
      .charts {{ display: flex; gap: 16px; }}
    </style>
  </head>
  <body>
    <h1>{title}</h1>
    <p class="score">{result.score}/100</p>
    <h2>Property details</h2>
    <table>{fact_rows}</table>
    <h2>Score breakdown</h2>
    <div class="charts">{bar_chart_svg(result.breakdown)}{pie_chart_svg(result.breakdown)}</div>
    <table>{breakdown_rows}</table>
    <h2>Neighborhood</h2>
    <table>
      <tr><th>Average price</th><td>{_money(stats.average_price)}</td></tr>
      <tr><th>Average square feet</th><td>{_number(stats.average_sqft)}</td></tr>
      <tr><th>Listings in area</th><td>{stats.total_properties}</td></tr>
    </table>
    <ul>{type_rows}</ul>
  </body>
</html>
"""


def render_pdf(document_html: str, output_path: str | Path | None = None) -> bytes:
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=True, args=["--no-sandbox", "--disable-setuid-sandbox"])
        try:
            page = browser.new_page()
            page.set_content(document_html, wait_until="networkidle")
            pdf_bytes = page.pdf(format="A4", print_background=True, margin=PDF_MARGIN)
        finally:
            browser.close()
    if output_path is not None:
        Path(output_path).write_bytes(pdf_bytes)
    return pdf_bytes


def build_report_html(
    repo: SupabaseRepo,
    property_id: str,
    config: NormalizationConfig | None = None,
    evaluation_year: int | None = None,
) -> str:
    row = repo.get_property(property_id)
    if row is None:
        raise LookupError(f"Property {property_id} not found")
    result = compute_ideality(
        property_from_record(row),
        config=config or load_normalization_config(),
        evaluation_year=resolve_evaluation_year(evaluation_year),
    )
    neighbors: list[dict[str, Any]] = []
    if row.get("lat") is not None and row.get("lng") is not None:
        neighbors = repo.find_neighbors(
            float(row["lat"]),
            float(row["lng"]),
            neighbor_delta_degrees(),
            exclude_id=str(row.get("id")),
        )
    else:
        LOGGER.warning("Property id=%s has no coordinates; neighborhood stats use the property alone.", property_id)
    stats = neighborhood_stats(row, neighbors)
    LOGGER.info("Report property=%s score=%s neighbors=%s", property_id, result.score, len(neighbors))
    return render_report_html(row, result, stats)


def _money(value: Any) -> str:
    if value is None:
        return "-"
    return f"${float(value):,.0f}"


def _number(value: Any) -> str:
    if value is None:
        return "-"
    number = float(value)
    return f"{number:,.0f}" if number.is_integer() else f"{number:,.1f}"


def _minutes(value: Any) -> str:
    if value is None:
        return "-"
    return f"{_number(value)} min"
