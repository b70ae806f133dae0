"""LeadHub — Meta Insight Row Transformer.

Pure functions turning raw insight rows into store-ready values.
Malformed input degrades to zero, it never raises.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

# Labels the platform uses for a form lead. The same physical lead is often
# reported under several of these at once.
LEAD_ACTION_TYPES = frozenset(
    {
        "lead",
        "leadgen_grouped",
        "onsite_conversion.lead",
        "onsite_conversion.lead_grouped",
        "offsite_conversion.fb_pixel_lead",
        "on_facebook_lead",
    }
)


@dataclass(frozen=True)
class InsightMetrics:
    spend: float = 0.0
    leads: int = 0
    impressions: int = 0
    clicks: int = 0


def _safe_float(value: Any) -> float:
    """Safely convert a value to float."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _safe_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def parse_spend(value: Any) -> float:
    """Decimal string → float; missing or non-numeric is 0."""
    spend = _safe_float(value)
    return spend if spend == spend else 0.0  # NaN


def is_lead_action(action_type: str) -> bool:
    return action_type in LEAD_ACTION_TYPES or "lead" in action_type


def extract_lead_count(actions: Optional[Iterable[Any]]) -> int:
    """Largest count among lead-like action types.

    Max rather than sum: overlapping labels describe the same leads.
    """
    if not isinstance(actions, (list, tuple)):
        return 0
    best = 0
    for action in actions:
        if not isinstance(action, dict):
            continue
        action_type = action.get("action_type") or action.get("type") or ""
        if not isinstance(action_type, str) or not is_lead_action(action_type):
            continue
        best = max(best, _safe_int(action.get("value", 0)))
    return best


def extract_metrics(row: Dict[str, Any]) -> InsightMetrics:
    if not isinstance(row, dict):
        return InsightMetrics()
    return InsightMetrics(
        spend=parse_spend(row.get("spend")),
        leads=extract_lead_count(row.get("actions")),
        impressions=_safe_int(row.get("impressions", 0)),
        clicks=_safe_int(row.get("clicks", 0)),
    )


def to_daily_insight_rows(
    raw_rows: List[Dict[str, Any]], ad_account_id: str
) -> List[Dict[str, Any]]:
    """Map per-day insight rows to DailyInsight records.

    Rows repeating a (date, campaign, adset, ad) key collapse to the last one.
    """
    by_key: Dict[tuple, Dict[str, Any]] = {}
    for row in raw_rows:
        date = row.get("date_start")
        campaign_id = row.get("campaign_id")
        if not date or not campaign_id:
            continue
        metrics = extract_metrics(row)
        record = {
            "date": date,
            "campaign_id": campaign_id,
            "campaign_name": row.get("campaign_name") or "",
            "adset_id": row.get("adset_id") or "",
            "ad_id": row.get("ad_id") or "",
            "spend_usd": metrics.spend,
            "leads_count": metrics.leads,
            "impressions": metrics.impressions,
            "clicks": metrics.clicks,
            "ad_account_id": ad_account_id,
        }
        by_key[(date, campaign_id, record["adset_id"], record["ad_id"])] = record
    return list(by_key.values())
