from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Role, User
from app.auth.security import create_access_token
from app.core.models import AcademicSession, SupervisorPosting


BASE_URL = "/api/v1/auto-posting"


@pytest.fixture()
async def posting_setup(make_supervisor, make_school, make_route):
    route = await make_route(1, name="Oyo Road")
    await make_supervisor(1, rank_weight=5)
    await make_supervisor(2, rank_weight=2)
    await make_school(1, distance_km=5, route=route, lga="Akinyele")
    await make_school(2, distance_km=20, route=route, lga="Akinyele")


async def bearer_for(db: AsyncSession, academic_session: AcademicSession, role: str, permissions=None) -> dict:
    if permissions is not None:
        db.add(Role(institution_id=academic_session.institution_id, name=role, permissions=permissions))
    user = User(
        institution_id=academic_session.institution_id,
        name=f"{role} user",
        email=f"{role.lower()}@example.com",
        role=role,
    )
    db.add(user)
    await db.commit()
    token = create_access_token(
        subject={"user_id": str(user.id), "institution_id": str(user.institution_id), "role": role}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_preview_returns_assignments_without_saving(
    client: AsyncClient,
    db_session: AsyncSession,
    academic_session: AcademicSession,
    auth_headers: dict,
    posting_setup,
) -> None:
    payload = {
        "session_id": str(academic_session.id),
        "number_of_postings": 1,
        "posting_type": "route_based",
        "priority_enabled": True,
    }

    response = await client.post(f"{BASE_URL}/preview", json=payload, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["preview"] is True
    assert data["visits_included"] == 1
    assert data["total_supervisors"] == 2
    assert data["total_available_slots"] == 2
    assert [(a["supervisor_name"], a["school_name"]) for a in data["assignments"]] == [
        ("Supervisor 1", "School 2"),
        ("Supervisor 2", "School 1"),
    ]
    assert data["assignments"][0]["route_name"] == "Oyo Road"
    assert data["statistics"]["by_visit"] == {"1": 2}
    assert data["warnings"] == []

    postings = await db_session.execute(select(SupervisorPosting))
    assert postings.scalars().all() == []


@pytest.mark.asyncio
async def test_execute_history_and_rollback_flow(
    client: AsyncClient,
    academic_session: AcademicSession,
    auth_headers: dict,
    posting_setup,
) -> None:
    payload = {"session_id": str(academic_session.id), "visits_included": 1, "priority_enabled": False}

    preview = await client.post(f"{BASE_URL}/preview", json=payload, headers=auth_headers)
    execute = await client.post(f"{BASE_URL}/execute", json=payload, headers=auth_headers)

    assert execute.status_code == 201
    executed = execute.json()
    assert executed["preview"] is False
    assert executed["assignments"] == preview.json()["assignments"]
    assert executed["total_postings_created"] == 2
    batch_id = executed["batch_id"]
    UUID(batch_id)

    history = await client.get(
        f"{BASE_URL}/history", params={"session_id": str(academic_session.id)}, headers=auth_headers
    )
    assert history.status_code == 200
    assert [b["id"] for b in history.json()] == [batch_id]

    detail = await client.get(f"{BASE_URL}/{batch_id}", headers=auth_headers)
    assert detail.status_code == 200
    assert len(detail.json()["posting_ids"]) == 2

    rollback = await client.post(f"{BASE_URL}/{batch_id}/rollback", headers=auth_headers)
    assert rollback.status_code == 200
    assert rollback.json()["batch_id"] == batch_id
    assert rollback.json()["cancelled_count"] == 2

    again = await client.post(f"{BASE_URL}/{batch_id}/rollback", headers=auth_headers)
    assert again.status_code == 409
    assert again.json()["detail"] == "This batch has already been rolled back"

    history = await client.get(f"{BASE_URL}/history", headers=auth_headers)
    assert history.json()[0]["status"] == "rolled_back"
    assert history.json()[0]["rolled_back_at"] is not None


@pytest.mark.asyncio
async def test_execute_with_nothing_to_assign_is_bad_request(
    client: AsyncClient, academic_session: AcademicSession, auth_headers: dict
) -> None:
    response = await client.post(
        f"{BASE_URL}/execute", json={"session_id": str(academic_session.id)}, headers=auth_headers
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_invalid_criteria_are_rejected(
    client: AsyncClient, academic_session: AcademicSession, auth_headers: dict
) -> None:
    bad_type = await client.post(
        f"{BASE_URL}/preview",
        json={"session_id": str(academic_session.id), "posting_type": "nearest"},
        headers=auth_headers,
    )
    too_many = await client.post(
        f"{BASE_URL}/preview",
        json={"session_id": str(academic_session.id), "visits_included": 11},
        headers=auth_headers,
    )
    over_session_limit = await client.post(
        f"{BASE_URL}/preview",
        json={"session_id": str(academic_session.id), "visits_included": 4},
        headers=auth_headers,
    )

    assert bad_type.status_code == 422
    assert too_many.status_code == 422
    assert over_session_limit.status_code == 400
    assert over_session_limit.json()["detail"] == "Number of postings cannot exceed session limit of 3"


@pytest.mark.asyncio
async def test_unknown_batch_is_not_found(
    client: AsyncClient, academic_session: AcademicSession, auth_headers: dict
) -> None:
    missing = "00000000-0000-0000-0000-00000000dead"

    detail = await client.get(f"{BASE_URL}/{missing}", headers=auth_headers)
    rollback = await client.post(f"{BASE_URL}/{missing}/rollback", headers=auth_headers)

    assert detail.status_code == 404
    assert rollback.status_code == 404


@pytest.mark.asyncio
async def test_requests_without_token_are_unauthorized(
    client: AsyncClient, academic_session: AcademicSession
) -> None:
    response = await client.post(f"{BASE_URL}/preview", json={"session_id": str(academic_session.id)})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token_is_unauthorized(client: AsyncClient, academic_session: AcademicSession) -> None:
    response = await client.get(f"{BASE_URL}/history", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_read_only_role_cannot_execute(
    client: AsyncClient,
    db_session: AsyncSession,
    academic_session: AcademicSession,
    posting_setup,
) -> None:
    headers = await bearer_for(db_session, academic_session, "dean", {"posting": {"read": True}})
    payload = {"session_id": str(academic_session.id)}

    preview = await client.post(f"{BASE_URL}/preview", json=payload, headers=headers)
    execute = await client.post(f"{BASE_URL}/execute", json=payload, headers=headers)

    assert preview.status_code == 200
    assert execute.status_code == 403


@pytest.mark.asyncio
async def test_platform_admin_bypasses_permission_checks(
    client: AsyncClient,
    db_session: AsyncSession,
    academic_session: AcademicSession,
    posting_setup,
) -> None:
    headers = await bearer_for(db_session, academic_session, "SUPER_ADMIN")

    response = await client.post(
        f"{BASE_URL}/execute", json={"session_id": str(academic_session.id)}, headers=headers
    )

    assert response.status_code == 201


@pytest.mark.asyncio
async def test_token_issued_for_a_previous_role_is_rejected(
    client: AsyncClient,
    academic_session: AcademicSession,
    head_of_tp: User,
) -> None:
    stale = create_access_token(
        subject={
            "user_id": str(head_of_tp.id),
            "institution_id": str(head_of_tp.institution_id),
            "role": "SUPER_ADMIN",
        }
    )

    response = await client.get(f"{BASE_URL}/history", headers={"Authorization": f"Bearer {stale}"})

    assert response.status_code == 401
