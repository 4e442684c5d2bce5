from __future__ import annotations

import argparse
import logging
from pathlib import Path

from backend.core.config import load_normalization_config
from backend.core.report import build_report_html, render_pdf
from backend.core.supabase_repo import SupabaseRepo


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
LOGGER = logging.getLogger(__name__)


def export_report(property_id: str, output: str | None = None, year: int | None = None) -> Path:
    repo = SupabaseRepo()
    document_html = build_report_html(
        repo,
        property_id,
        config=load_normalization_config(),
        evaluation_year=year,
    )
    output_path = Path(output or f"property-report-{property_id}.pdf")
    pdf_bytes = render_pdf(document_html, output_path)
    LOGGER.info("Wrote %s (%s bytes)", output_path, len(pdf_bytes))
    return output_path


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Export a PDF ideality report for one property.")
    parser.add_argument("property_id")
    parser.add_argument("--output", default=None, help="Destination PDF path.")
    parser.add_argument("--year", type=int, default=None, help="Pin the evaluation year used for age scoring.")
    args = parser.parse_args()
    export_report(args.property_id, output=args.output, year=args.year)
