"""Hierarchy aggregation over a small seeded account."""

from datetime import datetime, timezone

import pytest

from leadhub.core.cache import TTLCache
from leadhub.models.ad_models import Ad, AdSet, Campaign, DailyInsight
from leadhub.models.lead_models import Lead
from leadhub.services.hierarchy import HierarchyAggregator, day_bounds


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def seeded(store):
    store.insert(
        Campaign,
        [
            {"campaign_id": "c1", "name": "Summer-TR", "ad_account_id": "111", "spend_usd": 500.0, "insights_leads_count": 10},
            {"campaign_id": "c2", "name": "Brand-US", "ad_account_id": "111", "spend_usd": 200.0},
            {"campaign_id": "c9", "name": "Other account", "ad_account_id": "999", "spend_usd": 50.0},
        ],
    )
    store.insert(
        AdSet,
        [
            {"adset_id": "s1", "name": "TR-Women", "campaign_id": "c1", "ad_account_id": "111", "spend_usd": 500.0},
            {"adset_id": "s3", "name": "Empty set", "campaign_id": "c1", "ad_account_id": "111"},
            {"adset_id": "s2", "name": "Broad", "campaign_id": "c2", "ad_account_id": "111", "spend_usd": 150.0},
        ],
    )
    store.insert(
        Ad,
        [
            {"ad_id": "a1", "name": "Video TR", "adset_id": "s1", "campaign_id": "c1", "ad_account_id": "111"},
            {"ad_id": "a2", "name": "Image US", "adset_id": "s2", "campaign_id": "c2", "ad_account_id": "111"},
            {"ad_id": "a3", "name": "Image DE", "adset_id": "s2", "campaign_id": "c2", "ad_account_id": "111"},
        ],
    )
    store.insert(
        DailyInsight,
        [{"date": "2024-06-01", "campaign_id": "c2", "spend_usd": 20.0, "leads_count": 0, "ad_account_id": "111"}],
    )
    june = datetime(2024, 6, 10, tzinfo=timezone.utc)
    store.insert(
        Lead,
        [
            {"lead_id": "L1", "campaign_id": "c2", "created_at": june},
            {"lead_id": "L2", "campaign_id": "c2", "created_at": june},
            {"lead_id": "L3", "campaign_id": "c1", "created_at": datetime(2024, 1, 5, tzinfo=timezone.utc)},
        ],
    )
    return store


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def aggregator(seeded, clock):
    return HierarchyAggregator(seeded, TTLCache(60, clock=clock), TTLCache(300, clock=clock))


def _by_id(tree):
    return {c.campaign_id: c for c in tree}


class TestTree:
    def test_nesting_ordering_and_lifetime_figures(self, aggregator):
        tree = aggregator.get_hierarchy(account_id="act_111")

        assert [c.campaign_id for c in tree] == ["c1", "c2"]
        c1, c2 = tree
        assert sorted(s.adset_id for s in c1.adsets) == ["s1", "s3"]
        assert [a.ad_id for a in c2.adsets[0].ads] == ["a2", "a3"]
        assert c1.spend_usd == 500.0
        assert c1.leads_count == 10

    def test_form_leads_fill_in_when_platform_reports_none(self, aggregator):
        c2 = _by_id(aggregator.get_hierarchy())["c2"]
        assert c2.insights_leads_count == 0
        assert c2.form_leads_count == 2
        assert c2.leads_count == 2

    def test_countries_own_or_inherited(self, aggregator):
        tree = _by_id(aggregator.get_hierarchy())
        assert tree["c1"].countries == ["TR"]
        broad = tree["c2"].adsets[0]
        assert broad.countries == ["DE", "US"]

    def test_search_matches_campaign_name(self, aggregator):
        assert [c.campaign_id for c in aggregator.get_hierarchy(search="brand")] == ["c2"]


class TestDateRange:
    def test_campaign_without_activity_in_range_is_excluded(self, aggregator):
        tree = aggregator.get_hierarchy(date_start="2024-06-01", date_end="2024-06-30")

        assert [c.campaign_id for c in tree] == ["c2"]
        c2 = tree[0]
        assert c2.spend_usd == 20.0
        assert c2.leads_count == 2
        # no ad-set-level rows in range
        assert c2.adsets[0].spend_usd == 0.0
        assert c2.adsets[0].ads[0].spend_usd == 0.0

    def test_node_figures_ignore_other_entities_rows(self, aggregator, seeded):
        seeded.insert(
            DailyInsight,
            [
                {"date": "2024-06-02", "campaign_id": "c9", "adset_id": "s9", "spend_usd": 7.0, "ad_account_id": "999"},
                {"date": "2024-06-03", "campaign_id": "c2", "adset_id": "s2", "spend_usd": 5.0, "leads_count": 1, "ad_account_id": "111"},
            ],
        )

        c2 = _by_id(aggregator.get_hierarchy(date_start="2024-06-01", date_end="2024-06-30"))["c2"]

        assert c2.spend_usd == 20.0
        assert (c2.adsets[0].spend_usd, c2.adsets[0].leads_count) == (5.0, 1)

    def test_unranged_tree_keeps_lifetime_figures(self, aggregator):
        c2 = _by_id(aggregator.get_hierarchy())["c2"]
        assert c2.adsets[0].spend_usd == 150.0

    def test_day_bounds_end_is_exclusive_next_day(self):
        start, end = day_bounds("2024-06-01", "2024-06-30")
        assert start == datetime(2024, 6, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 7, 1, tzinfo=timezone.utc)


class TestFilters:
    def test_country_filter_prunes_branches(self, aggregator):
        tree = aggregator.get_hierarchy(country="us")

        assert [c.campaign_id for c in tree] == ["c2"]
        assert [a.ad_id for a in tree[0].adsets[0].ads] == ["a2"]

    def test_level_ad_drops_adsets_without_ads(self, aggregator):
        c1 = _by_id(aggregator.get_hierarchy(level="ad"))["c1"]
        assert [s.adset_id for s in c1.adsets] == ["s1"]

    def test_unknown_level_rejected(self, aggregator):
        with pytest.raises(ValueError):
            aggregator.get_hierarchy(level="account")

    def test_filtering_never_mutates_cached_tree(self, aggregator):
        full = aggregator.get_hierarchy()
        aggregator.get_hierarchy(country="US")
        again = aggregator.get_hierarchy()

        assert again is full
        assert len(_by_id(again)["c1"].adsets) == 2


class TestCaching:
    def test_same_key_within_ttl_returns_same_object(self, aggregator, clock):
        first = aggregator.get_hierarchy(account_id="111")
        clock.now += 59
        assert aggregator.get_hierarchy(account_id="111") is first

    def test_recomputed_after_ttl(self, aggregator, clock, seeded):
        first = aggregator.get_hierarchy(account_id="111")
        seeded.update_where(Campaign, {"name": "Summer-TR-v2"}, Campaign.campaign_id == "c1")

        clock.now += 61
        second = aggregator.get_hierarchy(account_id="111")

        assert second is not first
        assert _by_id(second)["c1"].name == "Summer-TR-v2"

    def test_available_countries(self, aggregator):
        assert aggregator.get_available_countries() == ["DE", "TR", "US"]

    def test_invalidate_clears_both_caches(self, aggregator):
        first = aggregator.get_hierarchy()
        aggregator.get_available_countries()
        aggregator.invalidate()

        assert aggregator.get_hierarchy() is not first
        assert len(aggregator.countries_cache) == 0
