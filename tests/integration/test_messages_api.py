"""
Integration tests for the member mailbox, support messages and broadcasts
"""

from uuid import uuid4

import pytest


async def _inbox(test_client, headers, folder="inbox"):
    response = await test_client.get("/api/messages/inbox", params={"folder": folder}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["messages"]


@pytest.mark.integration
async def test_support_message_fans_out_to_admins(test_client, chairman, manager_admin, member, auth_headers):
    response = await test_client.post(
        "/api/messages/support",
        json={"subject": "Visa documents", "body": "Which documents do I need for the work permit?"},
        headers=auth_headers(member)
    )

    assert response.status_code == 201, response.text

    for admin in (chairman, manager_admin):
        inbox = await _inbox(test_client, auth_headers(admin))
        assert len(inbox) == 1
        assert inbox[0]["subject"] == "Visa documents"
        assert inbox[0]["messageType"] == "SUPPORT"
        assert inbox[0]["isRead"] is False

    sent = await _inbox(test_client, auth_headers(member), folder="sent")
    assert len(sent) == 1
    assert sent[0]["isRead"] is True
    assert await _inbox(test_client, auth_headers(member)) == []


@pytest.mark.integration
async def test_support_message_without_admins(test_client, member, auth_headers):
    response = await test_client.post(
        "/api/messages/support", json={"subject": "Hello", "body": "Anyone there?"}, headers=auth_headers(member)
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "No admins available to receive support message"


@pytest.mark.integration
async def test_unknown_folder_is_rejected(test_client, member, auth_headers):
    response = await test_client.get("/api/messages/inbox", params={"folder": "archive"}, headers=auth_headers(member))

    assert response.status_code == 400


@pytest.mark.integration
async def test_mailbox_actions(test_client, chairman, member, make_member, auth_headers):
    other = await make_member(full_name="Karim Uddin")
    long_body = "Processing update. " * 10
    for subject in ("First notice", "Second notice"):
        response = await test_client.post(
            "/api/admin/messages/broadcast",
            json={"target": "ALL_MEMBERS", "subject": subject, "body": long_body},
            headers=auth_headers(chairman)
        )
        assert response.status_code == 201, response.text
        assert response.json()["recipientCount"] == 2

    headers = auth_headers(member)
    count = await test_client.get("/api/messages/unread-count", headers=headers)
    assert count.json()["count"] == 2

    preview = (await test_client.get("/api/messages/unread-preview", headers=headers)).json()["messages"]
    assert len(preview) == 2
    assert preview[0]["body"] == long_body[:80] + "..."

    first, second = await _inbox(test_client, headers)

    # another member cannot touch this recipient row
    foreign = await test_client.post(
        "/api/messages/read", json={"recipientId": first["recipientId"]}, headers=auth_headers(other)
    )
    assert foreign.status_code == 404
    assert foreign.json()["detail"]["error"] == "Recipient not found"

    read = await test_client.post("/api/messages/read", json={"recipientId": first["recipientId"]}, headers=headers)
    assert read.status_code == 200
    assert (await test_client.get("/api/messages/unread-count", headers=headers)).json()["count"] == 1

    trash = await test_client.post("/api/messages/trash", json={"recipientId": second["recipientId"]}, headers=headers)
    assert trash.status_code == 200
    assert [m["recipientId"] for m in await _inbox(test_client, headers, "trash")] == [second["recipientId"]]
    assert (await test_client.get("/api/messages/unread-count", headers=headers)).json()["count"] == 0

    delete = await test_client.post("/api/messages/delete", json={"recipientId": second["recipientId"]}, headers=headers)
    assert delete.status_code == 200
    assert await _inbox(test_client, headers, "trash") == []

    missing = await test_client.post("/api/messages/delete", json={"recipientId": str(uuid4())}, headers=headers)
    assert missing.status_code == 404


@pytest.mark.integration
async def test_mark_all_read(test_client, chairman, member, auth_headers):
    for subject in ("One", "Two", "Three"):
        await test_client.post(
            "/api/admin/messages/broadcast",
            json={"target": "SELECTED_USERS", "subject": subject, "body": "Body", "selectedUserIds": [str(member.id)]},
            headers=auth_headers(chairman)
        )

    response = await test_client.post("/api/messages/mark-all-read", headers=auth_headers(member))

    assert response.status_code == 200
    assert response.json()["updatedCount"] == 3
    assert (await test_client.get("/api/messages/unread-count", headers=auth_headers(member))).json()["count"] == 0


@pytest.mark.integration
async def test_broadcast_is_chairman_only(test_client, manager_admin, member, auth_headers):
    response = await test_client.post(
        "/api/admin/messages/broadcast",
        json={"target": "ALL_MEMBERS", "subject": "Notice", "body": "Body"},
        headers=auth_headers(manager_admin)
    )

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "Only Chairman can send broadcast messages"


@pytest.mark.integration
async def test_broadcast_targets(test_client, chairman, member, agent, auth_headers):
    headers = auth_headers(chairman)

    agents = await test_client.post(
        "/api/admin/messages/broadcast",
        json={"target": "ALL_AGENTS", "subject": "Agents", "body": "Training on Monday"},
        headers=headers
    )
    assert agents.json()["recipientCount"] == 1
    assert len(await _inbox(test_client, auth_headers(agent))) == 1
    assert await _inbox(test_client, auth_headers(member)) == []

    no_country = await test_client.post(
        "/api/admin/messages/broadcast",
        json={"target": "COUNTRY_MEMBERS", "subject": "Country", "body": "Body"},
        headers=headers
    )
    assert no_country.status_code == 400
    assert no_country.json()["detail"]["error"] == "No recipients found for broadcast"

    country = await test_client.post(
        "/api/admin/messages/broadcast",
        json={"target": "COUNTRY_MEMBERS", "subject": "Country", "body": "Body", "countryCode": "BD"},
        headers=headers
    )
    assert country.status_code == 201
    assert country.json()["recipientCount"] == 1

    unknown = await test_client.post(
        "/api/admin/messages/broadcast",
        json={"target": "EVERYONE", "subject": "Nope", "body": "Body"},
        headers=headers
    )
    assert unknown.status_code == 422


@pytest.mark.integration
async def test_failed_recipient_insert_keeps_session_usable(monkeypatch, async_session, member):
    from sqlalchemy import select

    from portal.models.message import Message, MessageRecipient
    from portal.services import messaging

    async def broken_recipients(session, message_id, recipient_ids, *args, **kwargs):
        session.add(MessageRecipient(message_id=message_id, recipient_user_id=None))
        await session.flush()

    monkeypatch.setattr(messaging, "_add_recipients", broken_recipients)

    result = await messaging.send_system_message(async_session, member.id, "Payment received", "Thank you.")
    await async_session.commit()

    assert result["success"] is False
    assert result["error"] == "Failed to deliver system message"
    stored = (await async_session.execute(select(Message))).scalars().all()
    assert [m.subject for m in stored] == ["Payment received"]
