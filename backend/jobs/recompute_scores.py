from __future__ import annotations

import argparse
import logging
from typing import Any

from backend.core.config import load_normalization_config, resolve_evaluation_year
from backend.core.models import InvalidPropertyError, NormalizationConfig, WeightProfile
from backend.core.normalize import property_from_record, quality_flags
from backend.core.scoring import compute_ideality, get_preset_weights
from backend.core.supabase_repo import SupabaseRepo


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
LOGGER = logging.getLogger(__name__)


def recompute_scores(
    repo: SupabaseRepo,
    weights: WeightProfile | None = None,
    config: NormalizationConfig | None = None,
    evaluation_year: int | None = None,
    dry_run: bool = False,
) -> dict[str, int]:
    """
    Recompute and store ideality_score for every listing so list queries can sort on it.
    Unscorable rows are logged and skipped; the batch keeps going.
    """
    config = config or load_normalization_config()
    year = resolve_evaluation_year(evaluation_year)
    rows = repo.iter_all_properties()
    counts = {"total": len(rows), "updated": 0, "unchanged": 0, "skipped": 0, "flagged": 0}

    for row in rows:
        property_id = row.get("id")
        try:
            prop = property_from_record(row)
        except InvalidPropertyError as exc:
            LOGGER.warning("Skipping property id=%s: %s", property_id, exc)
            counts["skipped"] += 1
            continue

        flags = quality_flags(prop, evaluation_year=year)
        if flags:
            counts["flagged"] += 1
            LOGGER.warning("Data quality flags for property id=%s: %s", property_id, flags)
        if "no_bedrooms" in flags:
            counts["skipped"] += 1
            continue

        result = compute_ideality(prop, weights, config, evaluation_year=year)
        if _stored_score(row) == result.score:
            counts["unchanged"] += 1
            continue
        if not dry_run:
            repo.update_ideality_score(str(property_id), result.score)
        counts["updated"] += 1

    LOGGER.info(
        "Score recompute done year=%s total=%s updated=%s unchanged=%s skipped=%s flagged=%s dry_run=%s",
        year,
        counts["total"],
        counts["updated"],
        counts["unchanged"],
        counts["skipped"],
        counts["flagged"],
        dry_run,
    )
    return counts


def _stored_score(row: dict[str, Any]) -> int | None:
    value = row.get("ideality_score")
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Recompute stored ideality scores for all listings.")
    parser.add_argument("--preset", default=None, help="Weight preset: default, budget, luxury, family, urban.")
    parser.add_argument("--year", type=int, default=None, help="Pin the evaluation year used for age scoring.")
    parser.add_argument("--dry-run", action="store_true", help="Compute scores without writing them.")
    args = parser.parse_args()
    recompute_scores(
        SupabaseRepo(),
        weights=get_preset_weights(args.preset),
        evaluation_year=args.year,
        dry_run=args.dry_run,
    )
