"""
Integration tests for the prize draw lifecycle: create, announce, prizes,
entry, winner selection, claim, payout and the public winners list
"""

from datetime import timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from portal.core.timeutils import utcnow
from portal.repos import prize_draw_repo, wallet_repo
from portal.services import accounting

ADMIN_API = "/api/admin/prize-draw"


async def _fund_pool(session, fee_total: Decimal) -> None:
    success, error, _ = await accounting.record_membership_payment(session, fee_total, uuid4())
    assert success, error
    await session.commit()


async def _create_announced_draw(test_client, headers) -> dict:
    response = await test_client.post(
        f"{ADMIN_API}/create",
        json={"countryCode": "BD", "drawDateIso": (utcnow() + timedelta(days=7)).isoformat()},
        headers=headers
    )
    assert response.status_code == 201, response.text
    draw = response.json()["draw"]

    response = await test_client.post(f"{ADMIN_API}/announce", json={"drawId": draw["id"]}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["draw"]


async def _move_draw_date_to_past(session, draw_id: str) -> None:
    draw = await prize_draw_repo.get_prize_draw(session, UUID(draw_id))
    draw.draw_date = utcnow() - timedelta(hours=1)
    await session.commit()


@pytest.mark.integration
async def test_only_chairman_manages_draws(test_client, manager_admin, auth_headers, bd_settings):
    response = await test_client.post(
        f"{ADMIN_API}/create",
        json={"countryCode": "BD", "drawDateIso": (utcnow() + timedelta(days=7)).isoformat()},
        headers=auth_headers(manager_admin)
    )

    assert response.status_code == 403
    assert "Chairman" in response.json()["detail"]["error"]


@pytest.mark.integration
async def test_members_cannot_reach_admin_api(test_client, member, auth_headers):
    response = await test_client.get(f"{ADMIN_API}/draws", headers=auth_headers(member))

    assert response.status_code == 403


@pytest.mark.integration
async def test_create_draw_validation(test_client, chairman, auth_headers):
    headers = auth_headers(chairman)

    bad_date = await test_client.post(
        f"{ADMIN_API}/create", json={"countryCode": "BD", "drawDateIso": "soon"}, headers=headers
    )
    assert bad_date.status_code == 400
    assert bad_date.json()["detail"]["error"] == "Invalid date format"

    past = await test_client.post(
        f"{ADMIN_API}/create",
        json={"countryCode": "BD", "drawDateIso": (utcnow() - timedelta(days=1)).isoformat()},
        headers=headers
    )
    assert past.status_code == 400
    assert past.json()["detail"]["error"] == "Draw date must be in the future"


@pytest.mark.integration
async def test_announce_snapshots_forecast_and_estimate(test_client, chairman, auth_headers, bd_settings, make_member):
    await make_member(full_name="Member One")
    await make_member(full_name="Member Two")

    draw = await _create_announced_draw(test_client, auth_headers(chairman))

    assert draw["announcementStatus"] == "ANNOUNCED"
    assert draw["forecastMemberCount"] >= 2
    assert draw["estimatedPrizePoolAmount"] == draw["forecastMemberCount"] * 1000 * 30 / 100

    again = await test_client.post(
        f"{ADMIN_API}/announce", json={"drawId": draw["id"]}, headers=auth_headers(chairman)
    )
    assert again.status_code == 400
    assert again.json()["detail"]["error"] == "Only COMING_SOON draws can be announced"


@pytest.mark.integration
async def test_announce_without_country_settings_fails(test_client, chairman, auth_headers):
    headers = auth_headers(chairman)
    response = await test_client.post(
        f"{ADMIN_API}/create",
        json={"countryCode": "BD", "drawDateIso": (utcnow() + timedelta(days=7)).isoformat()},
        headers=headers
    )
    draw_id = response.json()["draw"]["id"]

    response = await test_client.post(f"{ADMIN_API}/announce", json={"drawId": draw_id}, headers=headers)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Country settings not found for BD"


@pytest.mark.integration
async def test_prize_creation_blocked_by_pool_balance(test_client, async_session, chairman, auth_headers, bd_settings):
    await _fund_pool(async_session, Decimal("10000"))  # 30% -> 3000 in the pool
    headers = auth_headers(chairman)
    draw = await _create_announced_draw(test_client, headers)
    prize = {
        "drawId": draw["id"],
        "title": "Cash prize",
        "prizeType": "cash",
        "awardType": "RANDOM_DRAW",
        "prizeValueAmount": 2000,
        "currencyCode": "BDT",
        "numberOfWinners": 1,
    }

    first = await test_client.post(f"{ADMIN_API}/prizes/create", json=prize, headers=headers)
    assert first.status_code == 201, first.text

    second = await test_client.post(f"{ADMIN_API}/prizes/create", json=prize, headers=headers)
    assert second.status_code == 400
    detail = second.json()["detail"]
    assert detail["currentBalance"] == 3000.0
    assert detail["required"] == 4000.0
    assert detail["shortfall"] == 1000.0

    listing = await test_client.get(f"{ADMIN_API}/prizes/list", params={"draw_id": draw["id"]}, headers=headers)
    assert len(listing.json()["prizes"]) == 1


@pytest.mark.integration
async def test_prize_input_validation(test_client, async_session, chairman, auth_headers, bd_settings):
    await _fund_pool(async_session, Decimal("10000"))
    headers = auth_headers(chairman)
    draw = await _create_announced_draw(test_client, headers)
    base = {
        "drawId": draw["id"], "title": "Prize", "prizeType": "cash", "awardType": "RANDOM_DRAW",
        "prizeValueAmount": 100, "currencyCode": "BDT", "numberOfWinners": 1,
    }

    for override, error in [
        ({"awardType": "LOTTERY"}, "awardType must be RANDOM_DRAW or COMMUNITY_SUPPORT"),
        ({"prizeValueAmount": 0}, "prizeValueAmount must be greater than 0"),
        ({"numberOfWinners": 0}, "numberOfWinners must be at least 1"),
    ]:
        response = await test_client.post(f"{ADMIN_API}/prizes/create", json={**base, **override}, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == error


@pytest.mark.integration
async def test_full_draw_flow(test_client, async_session, chairman, member, auth_headers, bd_settings):
    await _fund_pool(async_session, Decimal("10000"))
    admin_headers = auth_headers(chairman)
    member_headers = auth_headers(member)

    status_before = await test_client.get("/api/prize-draw/status", headers=member_headers)
    assert status_before.json()["view"] == "none"

    draw = await _create_announced_draw(test_client, admin_headers)
    response = await test_client.post(
        f"{ADMIN_API}/prizes/create",
        json={
            "drawId": draw["id"], "title": "Smartphone fund", "prizeType": "cash",
            "awardType": "RANDOM_DRAW", "prizeValueAmount": 2000, "currencyCode": "BDT",
            "numberOfWinners": 1,
        },
        headers=admin_headers
    )
    assert response.status_code == 201

    status_open = await test_client.get("/api/prize-draw/status", headers=member_headers)
    assert status_open.json()["view"] == "entry"

    # entry is idempotent
    entered = await test_client.post("/api/prize-draw/enter", headers=member_headers)
    assert entered.status_code == 200
    assert entered.json()["alreadyEntered"] is False
    again = await test_client.post("/api/prize-draw/enter", headers=member_headers)
    assert again.json()["alreadyEntered"] is True
    assert again.json()["entryId"] == entered.json()["entryId"]

    # winners cannot be drawn before the draw date
    early = await test_client.post(f"{ADMIN_API}/run-winners", json={"drawId": draw["id"]}, headers=admin_headers)
    assert early.status_code == 400
    assert early.json()["detail"]["error"] == "Draw date has not been reached yet"

    await _move_draw_date_to_past(async_session, draw["id"])
    run = await test_client.post(f"{ADMIN_API}/run-winners", json={"drawId": draw["id"]}, headers=admin_headers)
    assert run.status_code == 200, run.text
    assert run.json()["winnersCreated"] == 1

    prizes = (await test_client.get("/api/prize-draw/prizes", headers=member_headers)).json()["prizes"]
    assert len(prizes) == 1
    assert prizes[0]["prizeTitle"] == "Smartphone fund"
    assert prizes[0]["claimStatus"] == "PENDING"
    winner_id = prizes[0]["id"]

    inbox = (await test_client.get("/api/messages/inbox", headers=member_headers)).json()["messages"]
    assert any("Smartphone fund" in m["body"] for m in inbox)

    # payout requires a claim first
    early_payout = await test_client.post(f"{ADMIN_API}/payout", json={"winnerId": winner_id}, headers=admin_headers)
    assert early_payout.status_code == 400

    claim = await test_client.post("/api/prize-draw/claim", json={"winnerId": winner_id}, headers=member_headers)
    assert claim.status_code == 200
    assert claim.json()["winner"]["claimStatus"] == "CLAIMED"

    reclaim = await test_client.post("/api/prize-draw/claim", json={"winnerId": winner_id}, headers=member_headers)
    assert reclaim.status_code == 400
    assert reclaim.json()["detail"]["error"] == "Prize has already been claimed or expired"

    payout = await test_client.post(f"{ADMIN_API}/payout", json={"winnerId": winner_id}, headers=admin_headers)
    assert payout.status_code == 200, payout.text
    assert payout.json()["winner"]["payoutStatus"] == "PAID"

    wallet = (await test_client.get("/api/wallet", headers=member_headers)).json()["wallet"]
    assert wallet["balance"] == 2000.0

    pool = (await test_client.get(f"{ADMIN_API}/pool-status", headers=admin_headers)).json()["pool"]
    assert pool["balance"] == 1000.0
    assert pool["total_contributions"] == 3000.0
    assert pool["total_disbursements"] == 2000.0

    public = (await test_client.get("/api/public/winners")).json()["winners"]
    assert public == [{
        "winnerName": "Rahim A.",
        "prizeTitle": "Smartphone fund",
        "awardType": "RANDOM_DRAW",
        "drawTitle": public[0]["drawTitle"],
        "drawDate": public[0]["drawDate"],
        "claimedAt": public[0]["claimedAt"],
    }]


@pytest.mark.integration
async def test_claim_guards(test_client, async_session, chairman, member, make_member, auth_headers, bd_settings):
    await _fund_pool(async_session, Decimal("10000"))
    admin_headers = auth_headers(chairman)
    draw = await _create_announced_draw(test_client, admin_headers)
    await test_client.post(
        f"{ADMIN_API}/prizes/create",
        json={
            "drawId": draw["id"], "title": "Cash", "prizeType": "cash", "awardType": "RANDOM_DRAW",
            "prizeValueAmount": 500, "currencyCode": "BDT", "numberOfWinners": 1,
        },
        headers=admin_headers
    )
    await test_client.post("/api/prize-draw/enter", headers=auth_headers(member))
    await _move_draw_date_to_past(async_session, draw["id"])
    await test_client.post(f"{ADMIN_API}/run-winners", json={"drawId": draw["id"]}, headers=admin_headers)
    winner_id = (await test_client.get("/api/prize-draw/prizes", headers=auth_headers(member))).json()["prizes"][0]["id"]

    other = await make_member(full_name="Other Member")
    not_yours = await test_client.post("/api/prize-draw/claim", json={"winnerId": winner_id}, headers=auth_headers(other))
    assert not_yours.status_code == 403
    assert not_yours.json()["detail"]["error"] == "This prize does not belong to you"

    lapsed = await make_member(full_name="Lapsed Member", active=False)
    no_membership = await test_client.post(
        "/api/prize-draw/claim", json={"winnerId": winner_id}, headers=auth_headers(lapsed)
    )
    assert no_membership.status_code == 403
    assert no_membership.json()["detail"]["error"] == "Active membership required to claim prizes"

    missing = await test_client.post("/api/prize-draw/claim", json={"winnerId": str(uuid4())}, headers=auth_headers(member))
    assert missing.status_code == 404

    winner = await prize_draw_repo.get_winner(async_session, UUID(winner_id))
    winner.claim_deadline_at = utcnow() - timedelta(minutes=1)
    await async_session.commit()
    late = await test_client.post("/api/prize-draw/claim", json={"winnerId": winner_id}, headers=auth_headers(member))
    assert late.status_code == 400
    assert late.json()["detail"]["error"] == "Claim deadline has passed"


@pytest.mark.integration
async def test_entry_requires_active_membership_and_open_draw(test_client, chairman, make_member, auth_headers, bd_settings):
    lapsed = await make_member(full_name="Lapsed Member", active=False)

    closed = await test_client.post("/api/prize-draw/enter", headers=auth_headers(lapsed))
    assert closed.status_code == 400
    assert closed.json()["detail"]["error"] == "No announced prize draw is open for entry"

    await _create_announced_draw(test_client, auth_headers(chairman))
    refused = await test_client.post("/api/prize-draw/enter", headers=auth_headers(lapsed))
    assert refused.status_code == 400
    assert refused.json()["detail"]["error"] == "Active membership required to enter the prize draw"


@pytest.mark.integration
async def test_split_config_rules(test_client, chairman, auth_headers):
    headers = auth_headers(chairman)

    default = await test_client.get(f"{ADMIN_API}/split-config", headers=headers)
    assert default.json()["config"]["random_percentage"] == 70.0

    bad_sum = await test_client.post(
        f"{ADMIN_API}/split-config",
        json={"randomPercentage": 60, "communityPercentage": 30, "effectiveFrom": (utcnow() + timedelta(days=1)).isoformat()},
        headers=headers
    )
    assert bad_sum.status_code == 400

    past = await test_client.post(
        f"{ADMIN_API}/split-config",
        json={"randomPercentage": 60, "communityPercentage": 40, "effectiveFrom": "2020-01-01T00:00:00Z"},
        headers=headers
    )
    assert past.status_code == 400

    ok = await test_client.post(
        f"{ADMIN_API}/split-config",
        json={"randomPercentage": 60, "communityPercentage": 40, "effectiveFrom": (utcnow() + timedelta(minutes=5)).isoformat()},
        headers=headers
    )
    assert ok.status_code == 201, ok.text


@pytest.mark.integration
async def test_wallet_unchanged_for_community_support_payout(async_session, chairman, member, bd_settings):
    """Community awards are booked as support and never credit the wallet."""
    from portal.services import prize_draw, winner_selection

    await _fund_pool(async_session, Decimal("10000"))
    draw = await prize_draw.create_draw(async_session, "BD", utcnow() + timedelta(days=3), chairman.id)
    await prize_draw.announce_draw(async_session, draw)
    result = await prize_draw.create_prize(
        async_session, draw, "Medical support", "cash", "COMMUNITY_SUPPORT", 1500, "BDT", 1, chairman.id
    )
    prize = result["prize"]

    with pytest.raises(ValueError, match="at least 10 characters"):
        await winner_selection.assign_community_support(async_session, draw.id, prize.id, member.id, "short", chairman.id)

    winner = await winner_selection.assign_community_support(
        async_session, draw.id, prize.id, member.id, "Hospital bills after flood damage", chairman.id
    )
    await prize_draw.claim_prize(async_session, member.id, winner.id)
    await prize_draw.pay_out_winner(async_session, winner, chairman.id)
    await async_session.commit()

    assert await wallet_repo.get_wallet_for_user(async_session, member.id) is None
    assert await accounting.get_prize_pool_balance(async_session) == Decimal("1500.00")


@pytest.mark.integration
async def test_community_award_is_once_per_member_and_slot(
    test_client, async_session, chairman, member, make_member, auth_headers, bd_settings
):
    await _fund_pool(async_session, Decimal("10000"))
    headers = auth_headers(chairman)
    draw = await _create_announced_draw(test_client, headers)
    created = await test_client.post(
        f"{ADMIN_API}/prizes/create",
        json={
            "drawId": draw["id"], "title": "Medical support", "prizeType": "cash",
            "awardType": "COMMUNITY_SUPPORT", "prizeValueAmount": 1500, "currencyCode": "BDT",
            "numberOfWinners": 1,
        },
        headers=headers
    )
    prize_id = created.json()["prize"]["id"]
    other = await make_member(full_name="Karim Uddin")

    def award(user):
        return {
            "drawId": draw["id"], "prizeId": prize_id, "userId": str(user.id),
            "reason": "Hospital bills after flood damage",
        }

    first = await test_client.post(f"{ADMIN_API}/assign-community-support", json=award(member), headers=headers)
    assert first.status_code == 201, first.text

    repeat = await test_client.post(f"{ADMIN_API}/assign-community-support", json=award(member), headers=headers)
    assert repeat.status_code == 400
    assert repeat.json()["detail"]["error"] == "Member has already been awarded a prize in this draw"

    full = await test_client.post(f"{ADMIN_API}/assign-community-support", json=award(other), headers=headers)
    assert full.status_code == 400
    assert full.json()["detail"]["error"] == "All winner slots for this prize are already filled"

    winners = await prize_draw_repo.get_draw_winners(async_session, UUID(draw["id"]))
    assert [w.winner_user_id for w in winners] == [member.id]


@pytest.mark.integration
async def test_draw_listing_reports_entry_counts(test_client, chairman, member, make_member, auth_headers, bd_settings):
    headers = auth_headers(chairman)
    empty = (await test_client.post(
        f"{ADMIN_API}/create",
        json={"countryCode": "BD", "drawDateIso": (utcnow() + timedelta(days=30)).isoformat()},
        headers=headers
    )).json()["draw"]
    draw = await _create_announced_draw(test_client, headers)
    second = await make_member(full_name="Karim Uddin")
    for entrant in (member, second):
        entered = await test_client.post("/api/prize-draw/enter", headers=auth_headers(entrant))
        assert entered.status_code == 200, entered.text

    response = await test_client.get(f"{ADMIN_API}/draws", headers=headers)

    assert response.status_code == 200
    counts = {d["id"]: d["entryCount"] for d in response.json()["draws"]}
    assert counts == {draw["id"]: 2, empty["id"]: 0}


@pytest.mark.integration
async def test_winner_kept_when_notification_fails(
    monkeypatch, test_client, async_session, chairman, member, auth_headers, bd_settings
):
    from portal.models.message import MessageRecipient
    from portal.services import messaging

    async def broken_send(session, *args, **kwargs):
        session.add(MessageRecipient(message_id=uuid4(), recipient_user_id=None))
        await session.flush()

    monkeypatch.setattr(messaging, "send_system_message", broken_send)
    await _fund_pool(async_session, Decimal("10000"))
    headers = auth_headers(chairman)
    draw = await _create_announced_draw(test_client, headers)
    await test_client.post(
        f"{ADMIN_API}/prizes/create",
        json={
            "drawId": draw["id"], "title": "Cash", "prizeType": "cash", "awardType": "RANDOM_DRAW",
            "prizeValueAmount": 500, "currencyCode": "BDT", "numberOfWinners": 1,
        },
        headers=headers
    )
    await test_client.post("/api/prize-draw/enter", headers=auth_headers(member))
    await _move_draw_date_to_past(async_session, draw["id"])

    run = await test_client.post(f"{ADMIN_API}/run-winners", json={"drawId": draw["id"]}, headers=headers)

    assert run.status_code == 200, run.text
    assert run.json()["winnersCreated"] == 1
    prizes = (await test_client.get("/api/prize-draw/prizes", headers=auth_headers(member))).json()["prizes"]
    assert len(prizes) == 1
    assert prizes[0]["claimStatus"] == "PENDING"
    stored = await prize_draw_repo.get_prize_draw(async_session, UUID(draw["id"]))
    await async_session.refresh(stored)
    assert stored.announcement_status == "COMPLETED"
