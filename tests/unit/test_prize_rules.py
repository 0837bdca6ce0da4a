"""
Unit tests for prize draw gating, name masking, pool validation and winner picking
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from portal.models.enums import AnnouncementStatus
from portal.models.prize_draw import PrizeDraw
from portal.services.accounting import check_prize_creation_allowed, credit, debit
from portal.services.prize_draw import (
    can_announce, can_expire_and_redraw, can_run_winners, draw_title, draw_view, mask_winner_name,
)
from portal.services.winner_selection import pick_random

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _draw(status: str, draw_date: datetime) -> PrizeDraw:
    return PrizeDraw(country_code="BD", title="Prize Draw", announcement_status=status, draw_date=draw_date)


class TestGating:
    def test_run_winners_needs_announced_and_reached_date(self):
        past = NOW - timedelta(hours=1)
        future = NOW + timedelta(days=1)

        assert can_run_winners(_draw(AnnouncementStatus.ANNOUNCED.value, past), NOW)
        assert can_run_winners(_draw(AnnouncementStatus.ANNOUNCED.value, NOW), NOW)
        assert not can_run_winners(_draw(AnnouncementStatus.ANNOUNCED.value, future), NOW)
        assert not can_run_winners(_draw(AnnouncementStatus.COMING_SOON.value, past), NOW)
        assert not can_run_winners(_draw(AnnouncementStatus.COMPLETED.value, past), NOW)

    def test_run_winners_accepts_naive_draw_date(self):
        naive_past = (NOW - timedelta(hours=1)).replace(tzinfo=None)
        assert can_run_winners(_draw(AnnouncementStatus.ANNOUNCED.value, naive_past), NOW)

    def test_only_coming_soon_can_be_announced(self):
        assert can_announce(_draw(AnnouncementStatus.COMING_SOON.value, NOW))
        assert not can_announce(_draw(AnnouncementStatus.ANNOUNCED.value, NOW))

    def test_expire_and_redraw_after_draw_date(self):
        assert can_expire_and_redraw(_draw(AnnouncementStatus.COMPLETED.value, NOW - timedelta(days=1)), NOW)
        assert not can_expire_and_redraw(_draw(AnnouncementStatus.ANNOUNCED.value, NOW + timedelta(days=1)), NOW)

    def test_draw_view(self):
        assert draw_view(None) == "none"
        assert draw_view(_draw(AnnouncementStatus.COMING_SOON.value, NOW)) == "countdown"
        assert draw_view(_draw(AnnouncementStatus.ANNOUNCED.value, NOW)) == "entry"
        assert draw_view(_draw(AnnouncementStatus.COMPLETED.value, NOW)) == "none"


class TestNames:
    @pytest.mark.parametrize("full_name,expected", [
        ("Rahim Ahmed", "Rahim A."),
        ("Rahim Uddin ahmed", "Rahim A."),
        ("Rahim", "Rahim"),
        ("", "Member from BD"),
        (None, "Member from BD"),
        ("   ", "Member from BD"),
    ])
    def test_mask_winner_name(self, full_name, expected):
        assert mask_winner_name(full_name, "BD") == expected

    def test_draw_title(self):
        assert draw_title(NOW) == "Prize Draw - 2026-06-01"


class TestPoolValidation:
    def test_blocked_when_cumulative_total_exceeds_balance(self):
        result = check_prize_creation_allowed(300, 300, 500)

        assert result["allowed"] is False
        assert result["current_balance"] == 500.0
        assert result["required"] == 600.0
        assert result["shortfall"] == 100.0
        assert "Insufficient Prize Draw Pool balance" in result["error"]

    def test_allowed_up_to_exact_balance(self):
        result = check_prize_creation_allowed(200, 300, 500)

        assert result["allowed"] is True
        assert result["shortfall"] == 0.0

    def test_ledger_lines_round_to_cents(self):
        assert debit("1000", "10.005") == {"account_code": "1000", "debit": Decimal("10.01"), "credit": Decimal("0")}
        assert credit("2100", 300)["credit"] == Decimal("300.00")


class TestPickRandom:
    def test_picks_distinct_candidates(self):
        picked = pick_random(list(range(10)), 4)

        assert len(picked) == 4
        assert len(set(picked)) == 4
        assert set(picked) <= set(range(10))

    def test_count_above_pool_returns_everyone(self):
        assert sorted(pick_random(["a", "b"], 5)) == ["a", "b"]

    def test_empty_pool(self):
        assert pick_random([], 3) == []

    def test_does_not_mutate_input(self):
        candidates = [1, 2, 3]
        pick_random(candidates, 2)
        assert candidates == [1, 2, 3]
