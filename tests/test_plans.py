from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from mdsign.services.plans import (
    PLANS,
    BlockReason,
    LimitType,
    PlanTier,
    evaluate_document_quota,
    evaluate_seat_capacity,
    get_plan,
    lookup_plan,
    month_window,
    resolve_plan,
    resolve_tier,
)


def test_plan_table_covers_every_tier():
    assert set(PLANS) == set(PlanTier)
    assert [p.id for p in PLANS.values()] == [1, 2, 3, 4, 5, 6]


def test_plan_table_caps():
    assert get_plan(PlanTier.CEDRO).docs_limit == 5
    assert get_plan(PlanTier.CEDRO).limit_type is LimitType.FREE_TRIAL
    assert get_plan(PlanTier.JACARANDA).docs_limit == 20
    assert get_plan(PlanTier.JACARANDA).limit_type is LimitType.MONTHLY
    assert [get_plan(t).users_limit for t in PlanTier] == [1, 1, 4, 6, 10, None]
    assert get_plan(PlanTier.MOGNO).price is None


@pytest.mark.parametrize(
    "identifier, expected",
    [
        ("IPE", PlanTier.IPE),
        ("aroeira", PlanTier.AROEIRA),
        (" Jacaranda ", PlanTier.JACARANDA),
        (3, PlanTier.ANGICO),
        (PlanTier.MOGNO, PlanTier.MOGNO),
    ],
)
def test_resolve_tier_known(identifier, expected):
    assert resolve_tier(identifier) is expected


@pytest.mark.parametrize("identifier", ["PLATINUM", "", None, 99, True])
def test_resolve_tier_unknown_fails_closed(identifier):
    assert resolve_tier(identifier) is PlanTier.CEDRO
    assert resolve_plan(identifier).docs_limit == 5


def test_lookup_plan_is_strict():
    assert lookup_plan("2").tier is PlanTier.JACARANDA
    assert lookup_plan(6).tier is PlanTier.MOGNO
    assert lookup_plan("mogno").tier is PlanTier.MOGNO
    assert lookup_plan("PLATINUM") is None
    assert lookup_plan(42) is None
    assert lookup_plan(None) is None


# ── Free trial ───────────────────────────────────────────────────────────────

def test_free_trial_allows_below_cap():
    decision = evaluate_document_quota(get_plan(PlanTier.CEDRO), 2, 0)
    assert decision.allowed
    assert decision.used == 2
    assert decision.remaining == 3
    assert decision.usage_percent == 40.0
    assert not decision.near_limit


def test_free_trial_near_limit_at_eighty_percent():
    decision = evaluate_document_quota(get_plan(PlanTier.CEDRO), 4, 0)
    assert decision.allowed
    assert decision.remaining == 1
    assert decision.near_limit


def test_free_trial_blocks_at_cap_regardless_of_month():
    decision = evaluate_document_quota(get_plan(PlanTier.CEDRO), 5, 0)
    assert not decision.allowed
    assert decision.block_reason is BlockReason.FREE_TRIAL_LIMIT_REACHED
    assert decision.remaining == 0
    assert "5 free documents" in decision.message


# ── Monthly ──────────────────────────────────────────────────────────────────

def test_monthly_counts_only_current_month():
    decision = evaluate_document_quota(get_plan(PlanTier.JACARANDA), 150, 19)
    assert decision.allowed
    assert decision.used == 19
    assert decision.remaining == 1


def test_monthly_blocks_at_cap():
    decision = evaluate_document_quota(get_plan(PlanTier.JACARANDA), 20, 20)
    assert not decision.allowed
    assert decision.block_reason is BlockReason.MONTHLY_LIMIT_REACHED
    assert "monthly limit of 20" in decision.message


def test_block_messages_differ_per_limit_type():
    trial = evaluate_document_quota(get_plan(PlanTier.CEDRO), 5, 0)
    monthly = evaluate_document_quota(get_plan(PlanTier.JACARANDA), 0, 20)
    assert trial.message != monthly.message


def test_monthly_near_limit_threshold():
    plan = get_plan(PlanTier.JACARANDA)
    assert not evaluate_document_quota(plan, 0, 15).near_limit
    assert evaluate_document_quota(plan, 0, 16).near_limit


# ── Unlimited ────────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "tier", [PlanTier.ANGICO, PlanTier.AROEIRA, PlanTier.IPE, PlanTier.MOGNO]
)
def test_unlimited_never_blocks_documents(tier):
    decision = evaluate_document_quota(get_plan(tier), 10_000, 5_000)
    assert decision.allowed
    assert decision.limit is None
    assert decision.remaining is None
    assert decision.usage_percent is None
    assert not decision.near_limit


def test_decision_as_dict_uses_wire_names():
    body = evaluate_document_quota(get_plan(PlanTier.CEDRO), 5, 0).as_dict()
    assert body["blockReason"] == "FREE_TRIAL_LIMIT_REACHED"
    assert body["limitType"] == "FREE_TRIAL"
    assert body["allowed"] is False


# ── Seats ────────────────────────────────────────────────────────────────────

def test_seat_check_blocks_over_cap():
    plan = get_plan(PlanTier.ANGICO)
    assert evaluate_seat_capacity(plan, 3).allowed
    blocked = evaluate_seat_capacity(plan, 4)
    assert not blocked.allowed
    assert blocked.limit == 4
    assert "4 user(s)" in blocked.message


def test_seat_check_unlimited_plan():
    assert evaluate_seat_capacity(get_plan(PlanTier.MOGNO), 500, adding=10).allowed


# ── Month window ─────────────────────────────────────────────────────────────

def test_month_window_mid_month():
    tz = ZoneInfo("America/Sao_Paulo")
    start, end = month_window(datetime(2026, 10, 18, 15, 30, tzinfo=tz))
    assert start == datetime(2026, 10, 1, tzinfo=tz)
    assert end == datetime(2026, 11, 1, tzinfo=tz)


def test_month_window_december_rolls_into_next_year():
    tz = ZoneInfo("America/Sao_Paulo")
    start, end = month_window(datetime(2026, 12, 31, 23, 59, tzinfo=tz))
    assert start == datetime(2026, 12, 1, tzinfo=tz)
    assert end == datetime(2027, 1, 1, tzinfo=tz)
