"""LeadHub — Hierarchy Aggregator.

Rebuilds the Campaign → AdSet → Ad tree from flat tables:

  1. load campaigns / ad sets / ads (account, search and country prefilters)
  2. with a date range, override stored lifetime figures with daily sums
  3. count stored form leads per campaign (range-paginated)
  4. nest ads under ad sets and ad sets under campaigns
  5. tag countries (own name, else inherited from children)
  6. with a date range, drop campaigns with no spend and no leads in it
  7. apply country / level filters
  8. cache the result per filter combination for a short TTL
"""

import json
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func

from leadhub.core.cache import TTLCache
from leadhub.core.countries import parse_countries
from leadhub.core.logging import get_logger
from leadhub.models.ad_models import Ad, AdSet, Campaign, DailyInsight
from leadhub.models.hierarchy_models import AdNode, AdSetNode, CampaignNode
from leadhub.models.lead_models import Lead
from leadhub.store import Store

logger = get_logger("services.hierarchy")

LEVELS = ("campaign", "adset", "ad")

# (spend, leads)
Totals = Tuple[float, int]


def _inherit(own: List[str], children: Iterable[List[str]]) -> List[str]:
    if own:
        return own
    inherited = set()
    for tags in children:
        inherited.update(tags)
    return sorted(inherited)


def day_bounds(date_start: Optional[str], date_end: Optional[str]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive YYYY-MM-DD days → [start, end) datetimes in UTC."""
    start = end = None
    if date_start:
        start = datetime.fromisoformat(date_start).replace(tzinfo=timezone.utc)
    if date_end:
        end = datetime.fromisoformat(date_end).replace(tzinfo=timezone.utc) + timedelta(days=1)
    return start, end


class HierarchyAggregator:
    def __init__(self, store: Store, hierarchy_cache: TTLCache, countries_cache: TTLCache):
        self.store = store
        self.hierarchy_cache = hierarchy_cache
        self.countries_cache = countries_cache

    # ── Public API ──

    def get_hierarchy(
        self,
        account_id: Optional[str] = None,
        search: Optional[str] = None,
        country: Optional[str] = None,
        level: Optional[str] = None,
        date_start: Optional[str] = None,
        date_end: Optional[str] = None,
    ) -> List[CampaignNode]:
        if level is not None and level not in LEVELS:
            raise ValueError(f"level must be one of {', '.join(LEVELS)}")
        country = country.upper() if country else None

        key = json.dumps(
            {
                "account_id": account_id,
                "search": search,
                "country": country,
                "level": level,
                "date_start": date_start,
                "date_end": date_end,
            },
            sort_keys=True,
        )
        cached = self.hierarchy_cache.get(key)
        if cached is not None:
            return cached

        campaigns, adsets, ads = self._load_entities(account_id, search, country)

        has_range = bool(date_start or date_end)
        overrides: Optional[Dict[str, Dict[str, Totals]]] = None
        if has_range:
            overrides = self._daily_totals(account_id, date_start, date_end)

        form_counts = self._form_lead_counts(date_start, date_end)
        tree = self._build_tree(campaigns, adsets, ads, overrides, form_counts)

        if has_range:
            tree = [c for c in tree if c.spend_usd > 0 or c.leads_count > 0]

        if country or level:
            tree = self._apply_filters(tree, country, level)

        logger.info(f"Built hierarchy with {len(tree)} campaigns")
        return self.hierarchy_cache.set(key, tree)

    def get_available_countries(self) -> List[str]:
        cached = self.countries_cache.get("countries")
        if cached is not None:
            return cached

        found = set()
        for model in (Campaign, AdSet, Ad):
            for name in self.store.read_column(model.name):
                found.update(parse_countries(name or ""))
        return self.countries_cache.set("countries", sorted(found))

    def invalidate(self) -> None:
        self.hierarchy_cache.invalidate()
        self.countries_cache.invalidate()

    # ── Steps ──

    def _load_entities(
        self, account_id: Optional[str], search: Optional[str], country: Optional[str]
    ) -> Tuple[List[Campaign], List[AdSet], List[Ad]]:
        campaign_filters: List[Any] = []
        adset_filters: List[Any] = []
        ad_filters: List[Any] = []
        if account_id:
            account_id = account_id.replace("act_", "")
            campaign_filters.append(Campaign.ad_account_id == account_id)
            adset_filters.append(AdSet.ad_account_id == account_id)
            ad_filters.append(Ad.ad_account_id == account_id)
        if search:
            campaign_filters.append(func.lower(Campaign.name).contains(search.lower()))
        if country:
            ad_filters.append(func.upper(Ad.name).contains(country))

        campaigns = self.store.read_all(
            Campaign, *campaign_filters, order_by=Campaign.spend_usd.desc()
        )
        adsets = self.store.read_all(AdSet, *adset_filters)
        ads = self.store.read_all(Ad, *ad_filters)
        return campaigns, adsets, ads

    def _daily_totals(
        self, account_id: Optional[str], date_start: Optional[str], date_end: Optional[str]
    ) -> Dict[str, Dict[str, Totals]]:
        """Sum daily rows per campaign / ad set / ad inside the range.

        Campaign-level rows carry empty adset/ad ids; deeper rows feed the
        lower levels only, so nothing is counted twice.
        """
        filters: List[Any] = []
        if date_start:
            filters.append(DailyInsight.date >= date_start)
        if date_end:
            filters.append(DailyInsight.date <= date_end)
        if account_id:
            filters.append(DailyInsight.ad_account_id == account_id.replace("act_", ""))

        totals: Dict[str, Dict[str, List[float]]] = {
            level: defaultdict(lambda: [0.0, 0]) for level in LEVELS
        }
        for row in self.store.read_all(DailyInsight, *filters):
            if row.ad_id:
                level, entity_id = "ad", row.ad_id
            elif row.adset_id:
                level, entity_id = "adset", row.adset_id
            else:
                level, entity_id = "campaign", row.campaign_id
            entry = totals[level][entity_id]
            entry[0] += row.spend_usd
            entry[1] += row.leads_count

        return {
            level: {k: (v[0], int(v[1])) for k, v in by_id.items()}
            for level, by_id in totals.items()
        }

    def _form_lead_counts(self, date_start: Optional[str], date_end: Optional[str]) -> Counter:
        start, end = day_bounds(date_start, date_end)
        filters: List[Any] = [Lead.campaign_id.is_not(None)]
        if start:
            filters.append(Lead.created_at >= start)
        if end:
            filters.append(Lead.created_at < end)
        return Counter(self.store.read_column(Lead.campaign_id, *filters))

    def _build_tree(
        self,
        campaigns: List[Campaign],
        adsets: List[AdSet],
        ads: List[Ad],
        overrides: Optional[Dict[str, Dict[str, Totals]]],
        form_counts: Counter,
    ) -> List[CampaignNode]:
        def figures(level: str, entity_id: str, spend: float, leads: int) -> Totals:
            if overrides is None:
                return spend, leads
            # Inside a range every node reports only its own daily rows.
            return overrides[level].get(entity_id, (0.0, 0))

        ads_by_adset: Dict[str, List[AdNode]] = defaultdict(list)
        for ad in ads:
            spend, leads = figures("ad", ad.ad_id, ad.spend_usd, ad.insights_leads_count)
            ads_by_adset[ad.adset_id].append(
                AdNode(
                    ad_id=ad.ad_id,
                    name=ad.name,
                    status=ad.status,
                    adset_id=ad.adset_id,
                    campaign_id=ad.campaign_id,
                    spend_usd=spend,
                    leads_count=leads,
                    countries=parse_countries(ad.name),
                )
            )

        adsets_by_campaign: Dict[str, List[AdSetNode]] = defaultdict(list)
        for adset in adsets:
            children = ads_by_adset.get(adset.adset_id, [])
            spend, leads = figures(
                "adset", adset.adset_id, adset.spend_usd, adset.insights_leads_count
            )
            adsets_by_campaign[adset.campaign_id].append(
                AdSetNode(
                    adset_id=adset.adset_id,
                    name=adset.name,
                    status=adset.status,
                    optimization_goal=adset.optimization_goal,
                    campaign_id=adset.campaign_id,
                    spend_usd=spend,
                    leads_count=leads,
                    countries=_inherit(parse_countries(adset.name), (a.countries for a in children)),
                    ads=children,
                )
            )

        tree: List[CampaignNode] = []
        for campaign in campaigns:
            children = adsets_by_campaign.get(campaign.campaign_id, [])
            spend, platform_leads = figures(
                "campaign",
                campaign.campaign_id,
                campaign.spend_usd,
                campaign.insights_leads_count,
            )
            form_leads = form_counts.get(campaign.campaign_id, 0)
            tree.append(
                CampaignNode(
                    id=campaign.id,
                    campaign_id=campaign.campaign_id,
                    name=campaign.name,
                    type=campaign.type,
                    status=campaign.status,
                    ad_account_id=campaign.ad_account_id,
                    spend_usd=spend,
                    leads_count=platform_leads or form_leads,
                    insights_leads_count=platform_leads,
                    form_leads_count=form_leads,
                    countries=_inherit(
                        parse_countries(campaign.name), (s.countries for s in children)
                    ),
                    adsets=children,
                )
            )
        return tree

    def _apply_filters(
        self, tree: List[CampaignNode], country: Optional[str], level: Optional[str]
    ) -> List[CampaignNode]:
        """Prune the tree. Returns new nodes; cached trees are never mutated."""
        filtered: List[CampaignNode] = []
        for campaign in tree:
            adsets: List[AdSetNode] = []
            for adset in campaign.adsets:
                ads = [a for a in adset.ads if not country or country in a.countries]
                adset_matches = not country or country in parse_countries(adset.name) or bool(ads)
                if not adset_matches:
                    continue
                if level == "ad" and not ads:
                    continue
                adsets.append(adset.model_copy(update={"ads": ads}))

            campaign_matches = (
                not country or country in parse_countries(campaign.name) or bool(adsets)
            )
            if not campaign_matches:
                continue
            if level in ("adset", "ad") and not adsets:
                continue
            filtered.append(campaign.model_copy(update={"adsets": adsets}))
        return filtered
