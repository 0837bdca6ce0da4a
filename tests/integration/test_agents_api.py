"""
Integration tests for agent access to members and case notes
"""

import pytest

from portal.models.enums import AgentRequestStatus, AgentStatus, ProfileRole
from portal.models.operations import AgentRequest

API = "/api/agents"


@pytest.fixture
def make_request(async_session):
    async def _make(member, agent=None, status=AgentRequestStatus.ASSIGNED.value, request_type="visa_guidance"):
        request = AgentRequest(
            user_id=member.id,
            assigned_agent_id=agent.id if agent else None,
            status=status,
            request_type=request_type
        )
        async_session.add(request)
        await async_session.commit()
        return request

    return _make


@pytest.mark.integration
async def test_agent_sees_assigned_member_only(test_client, agent, member, make_member, make_request, auth_headers):
    await make_request(member, agent)
    stranger = await make_member(full_name="Unassigned Member")
    headers = auth_headers(agent)

    allowed = await test_client.get(f"{API}/members/{member.id}", headers=headers)
    assert allowed.status_code == 200
    assert allowed.json()["profile"]["id"] == str(member.id)
    assert allowed.json()["membership"]["status"] == "active"

    refused = await test_client.get(f"{API}/members/{stranger.id}", headers=headers)
    assert refused.status_code == 403
    assert refused.json()["detail"]["error"] == "Member not assigned to agent"


@pytest.mark.integration
async def test_completed_assignment_no_longer_grants_access(test_client, agent, member, make_request, auth_headers):
    await make_request(member, agent, status=AgentRequestStatus.COMPLETED.value)

    response = await test_client.get(f"{API}/members/{member.id}", headers=auth_headers(agent))

    assert response.status_code == 403


@pytest.mark.integration
async def test_admin_sees_any_member(test_client, manager_admin, member, auth_headers):
    response = await test_client.get(f"{API}/members/{member.id}", headers=auth_headers(manager_admin))

    assert response.status_code == 200


@pytest.mark.integration
async def test_member_cannot_view_other_members(test_client, member, make_member, auth_headers):
    other = await make_member(full_name="Other Member")

    response = await test_client.get(f"{API}/members/{other.id}", headers=auth_headers(member))

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "User not authorized"


@pytest.mark.integration
async def test_list_assigned_requests(test_client, agent, member, make_member, make_request, auth_headers):
    await make_request(member, agent)
    await make_request(await make_member(full_name="Second Member"), agent, status=AgentRequestStatus.COMPLETED.value)
    await make_request(member, None, status=AgentRequestStatus.SUBMITTED.value)
    headers = auth_headers(agent)

    everything = (await test_client.get(f"{API}/requests", headers=headers)).json()["requests"]
    assert len(everything) == 2

    assigned = (await test_client.get(f"{API}/requests", params={"status": "ASSIGNED"}, headers=headers)).json()
    assert [r["user_id"] for r in assigned["requests"]] == [str(member.id)]

    bad_status = await test_client.get(f"{API}/requests", params={"status": "LOST"}, headers=headers)
    assert bad_status.status_code == 422


@pytest.mark.integration
async def test_pending_agents_are_refused(test_client, make_profile, auth_headers):
    pending = await make_profile(ProfileRole.AGENT.value, agent_status=AgentStatus.PENDING.value)

    response = await test_client.get(f"{API}/requests", headers=auth_headers(pending))

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "Forbidden - Approved agent access required"


@pytest.mark.integration
async def test_case_notes_on_own_request(test_client, agent, member, make_profile, make_request, auth_headers):
    request = await make_request(member, agent)

    response = await test_client.post(
        f"{API}/update-case-notes",
        json={"requestId": str(request.id), "caseNotes": "Passport copy received", "status": "COMPLETED"},
        headers=auth_headers(agent)
    )

    assert response.status_code == 200, response.text
    assert response.json()["request"]["case_notes"] == "Passport copy received"
    assert response.json()["request"]["status"] == "COMPLETED"

    other_agent = await make_profile(
        ProfileRole.AGENT.value, full_name="Other Agent", agent_status=AgentStatus.ACTIVE.value
    )
    refused = await test_client.post(
        f"{API}/update-case-notes",
        json={"requestId": str(request.id), "caseNotes": "Overwriting"},
        headers=auth_headers(other_agent)
    )
    assert refused.status_code == 403
    assert refused.json()["detail"]["error"] == "Request not assigned to agent"
