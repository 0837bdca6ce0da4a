"""
Integration tests for expiring unclaimed prizes and drawing replacements
"""

from datetime import timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from portal.core.timeutils import utcnow
from portal.repos import prize_draw_repo
from portal.services import accounting
from portal.tasks import prize_tasks

ADMIN_API = "/api/admin/prize-draw"


async def _draw_with_single_winner(test_client, async_session, chairman, entrants, auth_headers):
    """Announce a one-winner draw, enter every entrant and run the selection."""
    success, error, _ = await accounting.record_membership_payment(async_session, Decimal("10000"), uuid4())
    assert success, error
    await async_session.commit()

    headers = auth_headers(chairman)
    draw = (await test_client.post(
        f"{ADMIN_API}/create",
        json={"countryCode": "BD", "drawDateIso": (utcnow() + timedelta(days=7)).isoformat()},
        headers=headers
    )).json()["draw"]
    await test_client.post(f"{ADMIN_API}/announce", json={"drawId": draw["id"]}, headers=headers)
    await test_client.post(
        f"{ADMIN_API}/prizes/create",
        json={
            "drawId": draw["id"], "title": "Cash", "prizeType": "cash", "awardType": "RANDOM_DRAW",
            "prizeValueAmount": 500, "currencyCode": "BDT", "numberOfWinners": 1,
        },
        headers=headers
    )
    for entrant in entrants:
        entered = await test_client.post("/api/prize-draw/enter", headers=auth_headers(entrant))
        assert entered.status_code == 200, entered.text

    stored = await prize_draw_repo.get_prize_draw(async_session, UUID(draw["id"]))
    stored.draw_date = utcnow() - timedelta(hours=1)
    await async_session.commit()

    run = await test_client.post(f"{ADMIN_API}/run-winners", json={"drawId": draw["id"]}, headers=headers)
    assert run.json()["winnersCreated"] == 1
    return draw["id"]


async def _winners(test_client, chairman, draw_id, auth_headers):
    listing = await test_client.get(f"{ADMIN_API}/winners", params={"draw_id": draw_id}, headers=auth_headers(chairman))
    return listing.json()["prizes"][0]["winners"]


async def _expire_deadline(async_session, winner_id):
    winner = await prize_draw_repo.get_winner(async_session, UUID(winner_id))
    winner.claim_deadline_at = utcnow() - timedelta(minutes=5)
    await async_session.commit()


async def _win_notices(test_client, profile, auth_headers):
    inbox = await test_client.get("/api/messages/inbox", headers=auth_headers(profile))
    return [m for m in inbox.json()["messages"] if m["subject"].endswith("You Won: Cash")]


@pytest.mark.integration
async def test_manual_expire_and_redraw(test_client, async_session, chairman, member, make_member, auth_headers, bd_settings):
    second = await make_member(full_name="Karim Uddin")
    draw_id = await _draw_with_single_winner(test_client, async_session, chairman, [member, second], auth_headers)
    first_winner = (await _winners(test_client, chairman, draw_id, auth_headers))[0]

    nothing_yet = await test_client.post(
        f"{ADMIN_API}/expire-and-redraw", json={"drawId": draw_id}, headers=auth_headers(chairman)
    )
    assert nothing_yet.json()["numberExpired"] == 0

    await _expire_deadline(async_session, first_winner["id"])
    response = await test_client.post(
        f"{ADMIN_API}/expire-and-redraw", json={"drawId": draw_id}, headers=auth_headers(chairman)
    )

    assert response.status_code == 200, response.text
    assert response.json()["numberExpired"] == 1
    assert response.json()["numberRedrawn"] == 1

    winners = await _winners(test_client, chairman, draw_id, auth_headers)
    by_status = {w["claimStatus"]: w["userId"] for w in winners}
    assert by_status["EXPIRED"] == first_winner["userId"]
    # the replacement is the entrant who had not won yet
    assert by_status["PENDING"] != first_winner["userId"]

    replacement = next(p for p in (member, second) if str(p.id) == by_status["PENDING"])
    notices = await _win_notices(test_client, replacement, auth_headers)
    assert len(notices) == 1
    assert notices[0]["messageType"] == "SYSTEM"


@pytest.mark.integration
async def test_expiry_without_other_entrants_redraws_nothing(
    test_client, async_session, chairman, member, auth_headers, bd_settings
):
    draw_id = await _draw_with_single_winner(test_client, async_session, chairman, [member], auth_headers)
    winner = (await _winners(test_client, chairman, draw_id, auth_headers))[0]
    await _expire_deadline(async_session, winner["id"])

    response = await test_client.post(
        f"{ADMIN_API}/expire-and-redraw", json={"drawId": draw_id}, headers=auth_headers(chairman)
    )

    assert response.json()["numberExpired"] == 1
    assert response.json()["numberRedrawn"] == 0


@pytest.mark.integration
async def test_scheduled_sweep(
    monkeypatch, test_client, async_session, session_factory, chairman, member, make_member, auth_headers, bd_settings
):
    second = await make_member(full_name="Karim Uddin")
    draw_id = await _draw_with_single_winner(test_client, async_session, chairman, [member, second], auth_headers)
    winner = (await _winners(test_client, chairman, draw_id, auth_headers))[0]
    await _expire_deadline(async_session, winner["id"])
    monkeypatch.setattr(prize_tasks, "AsyncSessionLocal", session_factory)

    totals = await prize_tasks.run_expired_prize_sweep()

    assert totals == {"draws": 1, "numberExpired": 1, "numberRedrawn": 1}
    assert len(await _winners(test_client, chairman, draw_id, auth_headers)) == 2
    replacement = member if str(second.id) == winner["userId"] else second
    assert len(await _win_notices(test_client, replacement, auth_headers)) == 1

    again = await prize_tasks.run_expired_prize_sweep()
    assert again["numberExpired"] == 0
