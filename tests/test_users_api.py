"""User mutation and listing endpoint tests"""
import pytest

from app.shared.database.models import User, Profile, UserRole, ManagerUnit

MANAGE_URL = "/api/v1/users/manage"


@pytest.fixture
def general_manager(make_user):
    return make_user("gm@example.com", role="general_manager", full_name="Grace Manager")


@pytest.fixture
def gm_headers(general_manager, auth_headers):
    return auth_headers(general_manager)


@pytest.fixture
def unit_manager(make_unit, make_user):
    unit = make_unit("Branch")
    return make_user("um@example.com", role="unit_manager", unit=unit)


@pytest.fixture
def um_headers(unit_manager, auth_headers):
    return auth_headers(unit_manager)


def role_of(db_session, user_id):
    db_session.expire_all()
    assignment = db_session.query(UserRole).filter(UserRole.user_id == user_id).first()
    return assignment.role if assignment else None


def managed_unit_ids(db_session, user_id):
    db_session.expire_all()
    rows = db_session.query(ManagerUnit).filter(ManagerUnit.user_id == user_id).all()
    return sorted(row.unit_id for row in rows)


# ==================== CREATE ====================

def test_general_manager_creates_user(client, gm_headers, make_unit, db_session):
    unit = make_unit("Branch")

    response = client.post(
        MANAGE_URL,
        json={
            "action": "create",
            "email": "New.Seller@Example.com",
            "password": "secret123",
            "full_name": "New Seller",
            "unit_id": unit.id
        },
        headers=gm_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True

    db_session.expire_all()
    profile = db_session.get(Profile, body["user_id"])
    assert profile.email == "new.seller@example.com"
    assert profile.unit_id == unit.id
    assert role_of(db_session, body["user_id"]) == "sales"


def test_created_user_can_log_in(client, gm_headers):
    client.post(
        MANAGE_URL,
        json={"action": "create", "email": "a@example.com", "password": "secret123", "full_name": "A"},
        headers=gm_headers
    )

    response = client.post(
        "/api/v1/auth/login-json", json={"email": "a@example.com", "password": "secret123"}
    )

    assert response.status_code == 200
    assert response.json()["user"]["role"] == "sales"


def test_create_unit_manager_needs_a_unit(client, gm_headers):
    response = client.post(
        MANAGE_URL,
        json={
            "action": "create",
            "email": "um2@example.com",
            "password": "secret123",
            "full_name": "No Unit",
            "role": "unit_manager"
        },
        headers=gm_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "A unit manager must belong to a unit"


def test_create_second_manager_for_unit_is_rejected(client, gm_headers, unit_manager, db_session):
    response = client.post(
        MANAGE_URL,
        json={
            "action": "create",
            "email": "um2@example.com",
            "password": "secret123",
            "full_name": "Second Manager",
            "role": "unit_manager",
            "unit_id": unit_manager.profile.unit_id
        },
        headers=gm_headers
    )

    assert response.status_code == 400
    db_session.expire_all()
    assert db_session.query(User).filter(User.email == "um2@example.com").count() == 0


def test_create_duplicate_email_is_rejected(client, gm_headers, make_user):
    make_user("taken@example.com")

    response = client.post(
        MANAGE_URL,
        json={"action": "create", "email": "TAKEN@example.com", "password": "secret123", "full_name": "Dup"},
        headers=gm_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Email is already in use"


def test_create_with_short_password_is_rejected(client, gm_headers):
    response = client.post(
        MANAGE_URL,
        json={"action": "create", "email": "a@example.com", "password": "123", "full_name": "A"},
        headers=gm_headers
    )

    assert response.status_code == 400


def test_unit_manager_cannot_create_users(client, um_headers):
    response = client.post(
        MANAGE_URL,
        json={"action": "create", "email": "x@example.com", "password": "secret123", "full_name": "X"},
        headers=um_headers
    )

    assert response.status_code == 403


def test_sales_caller_is_forbidden(client, make_user, auth_headers):
    seller = make_user("seller@example.com")

    response = client.post(
        MANAGE_URL,
        json={"action": "update", "user_id": seller.id, "full_name": "Me"},
        headers=auth_headers(seller)
    )

    assert response.status_code == 403


# ==================== UPDATE ====================

def test_unit_manager_updates_profile_fields(client, um_headers, make_unit, make_user, db_session):
    other_unit = make_unit("Other")
    seller = make_user("seller@example.com", full_name="Old Name")

    response = client.post(
        MANAGE_URL,
        json={"action": "update", "user_id": seller.id, "full_name": "New Name", "unit_id": other_unit.id},
        headers=um_headers
    )

    assert response.status_code == 200
    db_session.expire_all()
    profile = db_session.get(Profile, seller.id)
    assert profile.full_name == "New Name"
    assert profile.unit_id == other_unit.id


def test_unit_manager_cannot_change_roles(client, um_headers, make_user, db_session):
    seller = make_user("seller@example.com", full_name="Seller")

    response = client.post(
        MANAGE_URL,
        json={"action": "update", "user_id": seller.id, "full_name": "Renamed", "role": "general_manager"},
        headers=um_headers
    )

    assert response.status_code == 403
    assert role_of(db_session, seller.id) == "sales"
    assert db_session.get(Profile, seller.id).full_name == "Seller"


def test_general_manager_changes_role(client, gm_headers, make_unit, make_user, db_session):
    unit = make_unit("Branch")
    seller = make_user("seller@example.com", unit=unit)

    response = client.post(
        MANAGE_URL,
        json={"action": "update", "user_id": seller.id, "role": "unit_manager"},
        headers=gm_headers
    )

    assert response.status_code == 200
    assert role_of(db_session, seller.id) == "unit_manager"


def test_promotion_into_managed_unit_is_rejected(client, gm_headers, unit_manager, make_user, db_session):
    unit_id = unit_manager.profile.unit_id
    seller = make_user("seller@example.com")

    response = client.post(
        MANAGE_URL,
        json={"action": "update", "user_id": seller.id, "role": "unit_manager", "unit_id": unit_id},
        headers=gm_headers
    )

    assert response.status_code == 400
    assert role_of(db_session, seller.id) == "sales"


def test_leaving_general_manager_role_clears_managed_units(
    client, gm_headers, make_unit, make_user, db_session
):
    unit = make_unit("Branch")
    boss = make_user("boss@example.com", role="general_manager", managed_units=[unit])

    response = client.post(
        MANAGE_URL,
        json={"action": "update", "user_id": boss.id, "role": "sales"},
        headers=gm_headers
    )

    assert response.status_code == 200
    assert role_of(db_session, boss.id) == "sales"
    assert managed_unit_ids(db_session, boss.id) == []


def test_update_unknown_user_is_rejected(client, gm_headers):
    response = client.post(
        MANAGE_URL, json={"action": "update", "user_id": 999, "full_name": "Ghost"}, headers=gm_headers
    )

    assert response.status_code == 400


def test_update_with_invalid_role_is_rejected(client, gm_headers, make_user):
    seller = make_user("seller@example.com")

    response = client.post(
        MANAGE_URL, json={"action": "update", "user_id": seller.id, "role": "owner"}, headers=gm_headers
    )

    assert response.status_code == 400


# ==================== DELETE ====================

def test_self_deletion_is_bad_request(client, general_manager, gm_headers):
    response = client.post(
        MANAGE_URL, json={"action": "delete", "user_id": general_manager.id}, headers=gm_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "You cannot delete your own account"


def test_self_deletion_by_unit_manager_is_bad_request(client, unit_manager, um_headers):
    response = client.post(
        MANAGE_URL, json={"action": "delete", "user_id": unit_manager.id}, headers=um_headers
    )

    assert response.status_code == 400


def test_unit_manager_deleting_someone_else_is_forbidden(client, um_headers, make_user):
    seller = make_user("seller@example.com")

    response = client.post(
        MANAGE_URL, json={"action": "delete", "user_id": seller.id}, headers=um_headers
    )

    assert response.status_code == 403


def test_general_manager_deletes_user(client, gm_headers, make_unit, make_user, db_session):
    unit = make_unit("Branch")
    boss = make_user("boss@example.com", role="general_manager", managed_units=[unit])
    boss_id = boss.id

    response = client.post(MANAGE_URL, json={"action": "delete", "user_id": boss_id}, headers=gm_headers)

    assert response.status_code == 200
    assert response.json() == {"success": True}
    db_session.expire_all()
    assert db_session.query(User).filter(User.id == boss_id).count() == 0
    assert db_session.query(Profile).filter(Profile.id == boss_id).count() == 0
    assert db_session.query(UserRole).filter(UserRole.user_id == boss_id).count() == 0
    assert db_session.query(ManagerUnit).filter(ManagerUnit.user_id == boss_id).count() == 0


def test_delete_unknown_user_is_rejected(client, gm_headers):
    response = client.post(MANAGE_URL, json={"action": "delete", "user_id": 4242}, headers=gm_headers)

    assert response.status_code == 400


# ==================== ASSIGN MANAGER UNITS ====================

def test_unit_manager_cannot_assign_manager_units(client, um_headers, general_manager, make_unit):
    unit = make_unit("North")

    response = client.post(
        MANAGE_URL,
        json={"action": "assign_manager_units", "user_id": general_manager.id, "unit_ids": [unit.id]},
        headers=um_headers
    )

    assert response.status_code == 403


def test_assign_manager_units_replaces_the_set(client, gm_headers, make_unit, make_user, db_session):
    north = make_unit("North")
    south = make_unit("South")
    east = make_unit("East")
    boss = make_user("boss@example.com", role="general_manager", managed_units=[north, south])

    payload = {"action": "assign_manager_units", "user_id": boss.id, "unit_ids": [south.id, east.id, east.id]}

    response = client.post(MANAGE_URL, json=payload, headers=gm_headers)
    assert response.status_code == 200
    assert managed_unit_ids(db_session, boss.id) == sorted([south.id, east.id])

    # Repeating the same request leaves the same set
    response = client.post(MANAGE_URL, json=payload, headers=gm_headers)
    assert response.status_code == 200
    assert managed_unit_ids(db_session, boss.id) == sorted([south.id, east.id])


def test_assign_empty_unit_list_clears_the_set(client, gm_headers, make_unit, make_user, db_session):
    north = make_unit("North")
    boss = make_user("boss@example.com", role="general_manager", managed_units=[north])

    response = client.post(
        MANAGE_URL,
        json={"action": "assign_manager_units", "user_id": boss.id, "unit_ids": []},
        headers=gm_headers
    )

    assert response.status_code == 200
    assert managed_unit_ids(db_session, boss.id) == []


def test_assign_manager_units_to_non_general_manager_is_rejected(client, gm_headers, make_unit, make_user):
    unit = make_unit("North")
    seller = make_user("seller@example.com")

    response = client.post(
        MANAGE_URL,
        json={"action": "assign_manager_units", "user_id": seller.id, "unit_ids": [unit.id]},
        headers=gm_headers
    )

    assert response.status_code == 400


def test_assign_unknown_units_is_rejected(client, gm_headers, make_unit, make_user, db_session):
    north = make_unit("North")
    boss = make_user("boss@example.com", role="general_manager", managed_units=[north])

    response = client.post(
        MANAGE_URL,
        json={"action": "assign_manager_units", "user_id": boss.id, "unit_ids": [north.id, 9999]},
        headers=gm_headers
    )

    assert response.status_code == 400
    assert managed_unit_ids(db_session, boss.id) == [north.id]


# ==================== READS ====================

def test_list_users_includes_role_unit_and_managed_units(
    client, gm_headers, general_manager, make_unit, make_user, db_session
):
    north = make_unit("North", code="N")
    make_user("seller@example.com", unit=north, full_name="Sam Seller")
    db_session.add(ManagerUnit(user_id=general_manager.id, unit_id=north.id))
    db_session.commit()

    response = client.get("/api/v1/users", headers=gm_headers)

    assert response.status_code == 200
    users = {user["email"]: user for user in response.json()}
    assert users["seller@example.com"]["role"] == "sales"
    assert users["seller@example.com"]["unit"]["code"] == "N"
    assert [u["code"] for u in users["gm@example.com"]["managed_units"]] == ["N"]
    assert users["gm@example.com"]["unit"] is None


def test_user_stats(client, gm_headers, unit_manager, make_user):
    make_user("seller1@example.com")
    make_user("seller2@example.com")

    response = client.get("/api/v1/users/stats", headers=gm_headers)

    assert response.status_code == 200
    assert response.json() == {"sales": 2, "unit_manager": 1, "general_manager": 1, "total": 4}


def test_user_mutation_invalidates_users_and_tree(client, gm_headers):
    response = client.post(
        MANAGE_URL,
        json={"action": "create", "email": "a@example.com", "password": "secret123", "full_name": "A"},
        headers=gm_headers
    )

    assert response.headers["X-Invalidate-Resources"] == "users, organization-tree"


# ==================== REGRESSIONS ====================

@pytest.mark.parametrize("email", ["a b@c..d", "x@.", "a@b@c.d", "@@foo.bar", "no-at-sign.com"])
def test_create_with_malformed_email_is_rejected(client, gm_headers, db_session, email):
    response = client.post(
        MANAGE_URL,
        json={"action": "create", "email": email, "password": "secret123", "full_name": "Bad Email"},
        headers=gm_headers
    )

    assert response.status_code == 400
    assert "email" in response.json()["error"]
    db_session.expire_all()
    assert db_session.query(Profile).filter(Profile.full_name == "Bad Email").count() == 0


@pytest.mark.parametrize("as_sent", [float, str])
def test_self_deletion_with_differently_typed_id_is_bad_request(client, unit_manager, um_headers, as_sent):
    response = client.post(
        MANAGE_URL,
        json={"action": "delete", "user_id": as_sent(unit_manager.id)},
        headers=um_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "You cannot delete your own account"
