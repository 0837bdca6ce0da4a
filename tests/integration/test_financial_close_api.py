"""
Integration tests for the monthly financial close: close, lock, unlock,
reports and the locked-period posting guard
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from portal.core.timeutils import period_of, utcnow
from portal.services import accounting

API = "/api/admin/financial-close"


async def _post_membership_fees(session, amount="10000"):
    success, error, _ = await accounting.record_membership_payment(session, Decimal(amount), uuid4())
    assert success, error
    await session.commit()


@pytest.mark.integration
async def test_close_lock_unlock_cycle(test_client, async_session, chairman, auth_headers):
    await _post_membership_fees(async_session)
    period = period_of(utcnow())
    headers = auth_headers(chairman)

    periods = (await test_client.get(f"{API}/periods", headers=headers)).json()
    assert periods["periods"] == []
    assert periods["currentPeriod"] == {"period": period, "status": "open"}

    locked_early = await test_client.post(f"{API}/lock-period", json={"period": period}, headers=headers)
    assert locked_early.status_code == 404

    closed = await test_client.post(f"{API}/close-period", json={"period": period}, headers=headers)
    assert closed.status_code == 200, closed.text
    assert closed.json()["period"]["status"] == "closed"
    assert sorted(closed.json()["reports_generated"]) == [
        "prize_pool_reconciliation", "profit_loss", "referral_payouts", "tier_payouts",
    ]

    reclose = await test_client.post(f"{API}/close-period", json={"period": period}, headers=headers)
    assert reclose.status_code == 400
    assert reclose.json()["detail"]["error"] == f"Period {period} is already closed"

    locked = await test_client.post(f"{API}/lock-period", json={"period": period}, headers=headers)
    assert locked.status_code == 200
    assert locked.json()["period"]["status"] == "locked"

    # nothing can be posted into a locked period
    success, error, _ = await accounting.record_membership_payment(async_session, Decimal("1000"), uuid4())
    assert success is False
    assert error == f"Accounting period {period} is locked"
    await async_session.rollback()

    no_reason = await test_client.post(
        f"{API}/unlock-period", json={"period": period, "reason": "   "}, headers=headers
    )
    assert no_reason.status_code == 400

    unlocked = await test_client.post(
        f"{API}/unlock-period", json={"period": period, "reason": "Late bKash settlement"}, headers=headers
    )
    assert unlocked.status_code == 200
    assert unlocked.json()["period"]["status"] == "closed"
    assert unlocked.json()["period"]["unlock_reason"] == "Late bKash settlement"

    relock_needed = await test_client.post(
        f"{API}/unlock-period", json={"period": period, "reason": "Again"}, headers=headers
    )
    assert relock_needed.status_code == 400
    assert relock_needed.json()["detail"]["error"] == "Only locked periods can be unlocked"


@pytest.mark.integration
async def test_reports_and_csv_export(test_client, async_session, chairman, auth_headers):
    await _post_membership_fees(async_session)
    period = period_of(utcnow())
    headers = auth_headers(chairman)
    await test_client.post(f"{API}/close-period", json={"period": period}, headers=headers)

    reports = (await test_client.get(f"{API}/reports", params={"period": period}, headers=headers)).json()["reports"]
    by_type = {r["report_type"]: r["report_data"] for r in reports}

    assert by_type["profit_loss"]["total_revenue"] == 7000.0
    assert by_type["profit_loss"]["net_income"] == 7000.0
    assert by_type["prize_pool_reconciliation"]["contributions"] == 3000.0
    assert by_type["prize_pool_reconciliation"]["closing_balance"] == 3000.0
    assert by_type["prize_pool_reconciliation"]["reconciliation_check"] == "BALANCED"
    assert by_type["referral_payouts"]["total_count"] == 0

    export = await test_client.get(
        f"{API}/reports/export",
        params={"period": period, "report_type": "prize_pool_reconciliation"},
        headers=headers
    )
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert export.headers["content-disposition"] == (
        f'attachment; filename="prize_pool_reconciliation_{period}.csv"'
    )
    assert "Contributions (30% of fees),3000.0" in export.text

    unknown_type = await test_client.get(
        f"{API}/reports/export", params={"period": period, "report_type": "balance_sheet"}, headers=headers
    )
    assert unknown_type.status_code == 422


@pytest.mark.integration
async def test_reports_for_unknown_or_malformed_period(test_client, chairman, auth_headers):
    headers = auth_headers(chairman)

    missing = await test_client.get(f"{API}/reports", params={"period": "2020-01"}, headers=headers)
    assert missing.status_code == 404

    malformed = await test_client.get(f"{API}/reports", params={"period": "January"}, headers=headers)
    assert malformed.status_code == 400
    assert malformed.json()["detail"]["error"] == "Period must be in YYYY-MM format"


@pytest.mark.integration
async def test_close_actions_are_chairman_only(test_client, manager_admin, auth_headers):
    headers = auth_headers(manager_admin)
    period = period_of(utcnow())

    listing = await test_client.get(f"{API}/periods", headers=headers)
    assert listing.status_code == 200

    for path, body in [
        ("close-period", {"period": period}),
        ("lock-period", {"period": period}),
        ("unlock-period", {"period": period, "reason": "Because"}),
    ]:
        response = await test_client.post(f"{API}/{path}", json=body, headers=headers)
        assert response.status_code == 403

    reports = await test_client.get(f"{API}/reports", params={"period": period}, headers=headers)
    assert reports.status_code == 403
