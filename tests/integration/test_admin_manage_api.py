"""
Integration tests for admin management, audit logs, notifications, test
accounts and people search
"""

import pytest

from portal.models.enums import NotificationType, ProfileRole
from portal.services import admin_notifications

API = "/api/admin"


@pytest.mark.integration
async def test_chairman_creates_admin(test_client, chairman, auth_headers, test_password):
    response = await test_client.post(
        f"{API}/admins/create",
        json={
            "email": "Ops.Lead@Example.com",
            "password": "long-enough-pass",
            "fullName": "Ops Lead",
            "role": "manager_admin",
        },
        headers=auth_headers(chairman)
    )

    assert response.status_code == 201, response.text
    admin = response.json()["admin"]
    assert admin["email"] == "ops.lead@example.com"
    assert admin["role"] == "manager_admin"

    login = await test_client.post(
        "/api/auth/login", json={"email": "ops.lead@example.com", "password": "long-enough-pass"}
    )
    assert login.status_code == 200

    hierarchy = (await test_client.get(f"{API}/admins/hierarchy", headers=auth_headers(chairman))).json()
    assert hierarchy["hierarchy"][0]["email"] == "ops.lead@example.com"
    assert hierarchy["hierarchy"][0]["created_by"] == str(chairman.id)

    logs = (await test_client.get(
        f"{API}/audit-logs", params={"action": "ADMIN_CREATED"}, headers=auth_headers(chairman)
    )).json()["logs"]
    assert len(logs) == 1
    assert logs[0]["new_values"] == {"role": "manager_admin", "email": "ops.lead@example.com"}


@pytest.mark.integration
@pytest.mark.parametrize("role,password,error", [
    ("super_admin", "long-enough-pass", "Cannot create super_admin via API"),
    ("member", "long-enough-pass", "Role must be manager_admin or worker_admin"),
    ("worker_admin", "short", "Password must be at least 8 characters"),
])
async def test_create_admin_validation(test_client, chairman, auth_headers, role, password, error):
    response = await test_client.post(
        f"{API}/admins/create",
        json={"email": "new.admin@example.com", "password": password, "fullName": "New Admin", "role": role},
        headers=auth_headers(chairman)
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == error


@pytest.mark.integration
async def test_duplicate_admin_email(test_client, chairman, manager_admin, auth_headers):
    response = await test_client.post(
        f"{API}/admins/create",
        json={"email": manager_admin.email, "password": "long-enough-pass", "fullName": "Dup", "role": "worker_admin"},
        headers=auth_headers(chairman)
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Email already exists in the system"


@pytest.mark.integration
async def test_only_chairman_manages_admins(test_client, manager_admin, auth_headers):
    response = await test_client.post(
        f"{API}/admins/create",
        json={"email": "w@example.com", "password": "long-enough-pass", "fullName": "Worker", "role": "worker_admin"},
        headers=auth_headers(manager_admin)
    )

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "Forbidden - Chairman authority required"


@pytest.mark.integration
async def test_suspend_and_unsuspend_restores_role(test_client, chairman, manager_admin, auth_headers):
    headers = auth_headers(chairman)

    missing_reason = await test_client.post(
        f"{API}/admins/suspend", json={"adminId": str(manager_admin.id)}, headers=headers
    )
    assert missing_reason.status_code == 400

    suspended = await test_client.post(
        f"{API}/admins/suspend",
        json={"adminId": str(manager_admin.id), "reason": "Shared credentials"},
        headers=headers
    )
    assert suspended.status_code == 200
    assert suspended.json()["admin"]["role"] == "suspended"

    # a suspended admin's token stops working
    blocked = await test_client.get(f"{API}/notifications", headers=auth_headers(manager_admin))
    assert blocked.status_code == 401

    restored = await test_client.post(
        f"{API}/admins/unsuspend", json={"adminId": str(manager_admin.id), "reason": "Reviewed"}, headers=headers
    )
    assert restored.status_code == 200
    assert restored.json()["admin"]["role"] == "manager_admin"

    logs = (await test_client.get(f"{API}/audit-logs/user/{manager_admin.id}", headers=headers)).json()["logs"]
    assert {log["action"] for log in logs} == {"ADMIN_SUSPENDED", "ADMIN_UNSUSPENDED"}


@pytest.mark.integration
async def test_chairman_cannot_be_suspended_or_suspend_self(test_client, chairman, make_profile, auth_headers):
    other_super = await make_profile(ProfileRole.SUPER_ADMIN.value, full_name="Other Super")
    headers = auth_headers(chairman)

    self_suspend = await test_client.post(
        f"{API}/admins/suspend", json={"adminId": str(chairman.id), "reason": "Testing"}, headers=headers
    )
    assert self_suspend.json()["detail"]["error"] == "Cannot suspend yourself"

    super_suspend = await test_client.post(
        f"{API}/admins/suspend", json={"adminId": str(other_super.id), "reason": "Testing"}, headers=headers
    )
    assert super_suspend.json()["detail"]["error"] == "Cannot suspend super_admin"


@pytest.mark.integration
async def test_update_role(test_client, chairman, manager_admin, member, auth_headers):
    headers = auth_headers(chairman)

    changed = await test_client.post(
        f"{API}/admins/update-role",
        json={"adminId": str(manager_admin.id), "newRole": "worker_admin", "reason": "Restructure"},
        headers=headers
    )
    assert changed.status_code == 200
    assert changed.json()["admin"]["role"] == "worker_admin"

    not_admin = await test_client.post(
        f"{API}/admins/update-role", json={"adminId": str(member.id), "newRole": "worker_admin"}, headers=headers
    )
    assert not_admin.status_code == 404

    listing = (await test_client.get(f"{API}/admins/list", headers=headers)).json()["admins"]
    assert {a["email"] for a in listing} == {chairman.email, manager_admin.email}


@pytest.mark.integration
async def test_member_access_is_refused_and_audited(test_client, chairman, member, auth_headers):
    response = await test_client.get(f"{API}/notifications", headers=auth_headers(member))

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "Forbidden - Admin access required"

    logs = (await test_client.get(
        f"{API}/audit-logs", params={"action": "PERMISSION_VIOLATION"}, headers=auth_headers(chairman)
    )).json()["logs"]
    assert len(logs) == 1
    assert logs[0]["actor_id"] == str(member.id)
    assert logs[0]["details"]["violation_type"] == "ADMIN_API_ACCESS"
    assert logs[0]["details"]["endpoint"] == f"{API}/notifications"


@pytest.mark.integration
async def test_master_admin_is_read_only(test_client, make_profile, auth_headers):
    master = await make_profile(ProfileRole.MASTER_ADMIN.value, full_name="Auditor")
    headers = auth_headers(master)

    read = await test_client.get(f"{API}/notifications", headers=headers)
    assert read.status_code == 200

    write = await test_client.post(f"{API}/admins/unsuspend", json={"adminId": str(master.id)}, headers=headers)
    assert write.status_code == 403

    approve = await test_client.post(
        f"{API}/withdrawals/00000000-0000-0000-0000-000000000000/approve", json={}, headers=headers
    )
    assert approve.status_code == 403
    assert approve.json()["detail"]["blockedMethod"] == "POST"


@pytest.mark.integration
async def test_notifications(test_client, async_session, manager_admin, auth_headers):
    tier = await admin_notifications.create_notification(
        async_session, NotificationType.TIER_BONUS_APPROVAL.value, "Tier bonus", "Approve tier 2 bonus"
    )
    await admin_notifications.create_notification(
        async_session, NotificationType.SYSTEM_ALERT.value, "Alert", "Disk almost full"
    )
    await async_session.commit()
    headers = auth_headers(manager_admin)

    assert (await test_client.get(f"{API}/notifications/unread-count", headers=headers)).json()["count"] == 2

    tier_only = (await test_client.get(f"{API}/notifications/tier-bonus", headers=headers)).json()["notifications"]
    assert [n["title"] for n in tier_only] == ["Tier bonus"]

    read = await test_client.post(f"{API}/notifications/{tier.id}/read", headers=headers)
    assert read.status_code == 200
    unread = (await test_client.get(f"{API}/notifications/unread", headers=headers)).json()["notifications"]
    assert [n["title"] for n in unread] == ["Alert"]

    missing = await test_client.post(
        f"{API}/notifications/00000000-0000-0000-0000-000000000000/read", headers=headers
    )
    assert missing.status_code == 404


@pytest.mark.integration
async def test_ceo_test_accounts(test_client, chairman, auth_headers):
    payload = {"email": "ceo@example.com", "password": "ceo-test-pass", "fullName": "Karim Chowdhury"}

    response = await test_client.post(f"{API}/test/create-ceo", json=payload, headers=auth_headers(chairman))

    assert response.status_code == 201, response.text
    accounts = response.json()["accounts"]
    assert accounts["superAdmin"]["email"] == "ceo@example.com"
    assert accounts["member"]["email"] == "ceo+member@example.com"
    assert accounts["agent"]["email"] == "ceo+agent@example.com"
    assert accounts["member"]["referralCode"].startswith("CEO")

    for email in ("ceo@example.com", "ceo+member@example.com", "ceo+agent@example.com"):
        login = await test_client.post("/api/auth/login", json={"email": email, "password": "ceo-test-pass"})
        assert login.status_code == 200

    again = await test_client.post(f"{API}/test/create-ceo", json=payload, headers=auth_headers(chairman))
    assert again.status_code == 400
    assert again.json()["detail"]["error"] == "Account already exists: ceo@example.com"


@pytest.mark.integration
async def test_activate_free_membership(test_client, chairman, make_profile, make_member, auth_headers):
    walk_in = await make_profile(full_name="Walk In")
    pending = await make_member(full_name="Pending Member", active=False)

    created = await test_client.post(
        f"{API}/test/activate-free-membership", json={"userId": str(walk_in.id)}, headers=auth_headers(chairman)
    )
    assert created.status_code == 200
    assert created.json()["created"] is True
    assert created.json()["membership"]["status"] == "active"
    assert created.json()["membership"]["fee_amount"] == 0.0

    updated = await test_client.post(
        f"{API}/test/activate-free-membership", json={"userId": str(pending.id)}, headers=auth_headers(chairman)
    )
    assert updated.json()["created"] is False
    assert updated.json()["membership"]["status"] == "active"


@pytest.mark.integration
async def test_people_search(test_client, async_session, manager_admin, make_member, agent, auth_headers):
    rahim = await make_member(full_name="Rahim Uddin", referral_code="RAHIM-XY12ZZ")
    await make_member(full_name="Selina Parvin")
    headers = auth_headers(manager_admin)

    by_name = (await test_client.get(f"{API}/people/search", params={"q": "rahim"}, headers=headers)).json()["results"]
    assert [r["userId"] for r in by_name] == [str(rahim.id)]
    assert by_name[0]["accountType"] == "member"
    assert by_name[0]["membershipStatus"] == "active"

    by_code = (await test_client.get(f"{API}/people/search", params={"q": "RAHIM-XY"}, headers=headers)).json()
    assert [r["userId"] for r in by_code["results"]] == [str(rahim.id)]

    number = by_name[0]["memberNumber"]
    by_number = (await test_client.get(f"{API}/people/search", params={"q": str(number)}, headers=headers)).json()
    assert str(rahim.id) in [r["userId"] for r in by_number["results"]]

    agents = (await test_client.get(f"{API}/people/search", params={"q": "Field"}, headers=headers)).json()["results"]
    assert agents[0]["accountType"] == "agent"
    assert agents[0]["agentStatus"] == "ACTIVE"

    # admins never show up
    admins = (await test_client.get(f"{API}/people/search", params={"q": "Support"}, headers=headers)).json()
    assert admins["results"] == []

    empty = await test_client.get(f"{API}/people/search", params={"q": "  "}, headers=headers)
    assert empty.status_code == 400


@pytest.mark.integration
async def test_deployment_info(test_client, manager_admin, auth_headers):
    response = await test_client.get(f"{API}/deployment-info", headers=auth_headers(manager_admin))

    assert response.status_code == 200
    data = response.json()
    assert data["countryCode"] == "BD"
    assert data["currencySymbol"] == "৳"
    assert data["governance"]["CAN_CHANGE_CURRENCY"] is False
