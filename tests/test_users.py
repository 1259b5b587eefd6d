"""Account management routes: listing, profile updates, password changes, deletion."""

from conftest import STRONG_PASSWORD, auth_header

NEW_PASSWORD = "N3w!Passw0rd-2026"


class TestReadUsers:
    def test_list_requires_admin(self, client, register_user):
        user = register_user()
        assert client.get("/users", headers=auth_header(user["token"])).status_code == 403

    def test_admin_lists_users(self, client, register_user, admin_token):
        register_user()
        register_user(email="second@example.com", full_name="Sam Second")

        response = client.get("/users", params={"limit": 2}, headers=auth_header(admin_token))

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 2
        assert body["pagination"] == {
            "page": 1,
            "limit": 2,
            "total": 2,
            "has_next": True,
            "has_prev": False,
        }

        last_page = client.get("/users", params={"limit": 2, "page": 2}, headers=auth_header(admin_token)).json()
        assert len(last_page["data"]) == 1
        assert last_page["pagination"]["has_next"] is False
        assert last_page["pagination"]["has_prev"] is True

    def test_user_reads_own_account(self, client, register_user):
        user = register_user()

        response = client.get(f"/users/{user['user_id']}", headers=auth_header(user["token"]))

        assert response.status_code == 200
        assert response.json()["data"]["id"] == user["user_id"]

    def test_user_cannot_read_other_account(self, client, register_user):
        first = register_user()
        second = register_user(email="second@example.com")

        response = client.get(f"/users/{second['user_id']}", headers=auth_header(first["token"]))

        assert response.status_code == 403
        assert response.json()["detail"] == "Forbidden: You can only access your own account"

    def test_admin_reads_any_account(self, client, register_user, admin_token):
        user = register_user()
        assert client.get(f"/users/{user['user_id']}", headers=auth_header(admin_token)).status_code == 200

    def test_admin_gets_404_for_missing_account(self, client, admin_token):
        response = client.get("/users/00000000-0000-0000-0000-000000000000", headers=auth_header(admin_token))
        assert response.status_code == 404


class TestUpdateUser:
    def test_profile_update(self, client, register_user):
        user = register_user()

        response = client.put(
            f"/users/{user['user_id']}",
            json={"full_name": "Dana Q. Driver", "address": "9 New Road"},
            headers=auth_header(user["token"]),
        )

        assert response.status_code == 202
        data = response.json()["data"]
        assert data["full_name"] == "Dana Q. Driver"
        assert data["address"] == "9 New Road"
        assert data["phone_number"] == "+1 555 0100"

    def test_password_change_requires_current_password(self, client, register_user):
        user = register_user()

        response = client.put(
            f"/users/{user['user_id']}",
            json={"password": NEW_PASSWORD},
            headers=auth_header(user["token"]),
        )

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_credentials"

    def test_password_change_with_wrong_current_password(self, client, register_user):
        user = register_user()

        response = client.put(
            f"/users/{user['user_id']}",
            json={"password": NEW_PASSWORD, "current_password": "Wr0ng!Passw0rd"},
            headers=auth_header(user["token"]),
        )

        assert response.status_code == 401

    def test_weak_new_password_rejected(self, client, register_user):
        user = register_user()

        response = client.put(
            f"/users/{user['user_id']}",
            json={"password": "short", "current_password": STRONG_PASSWORD},
            headers=auth_header(user["token"]),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "policy_violation"

    def test_password_change(self, client, register_user, get_account):
        user = register_user()
        old_hash = get_account("driver@example.com").password_hash

        response = client.put(
            f"/users/{user['user_id']}",
            json={"password": NEW_PASSWORD, "current_password": STRONG_PASSWORD},
            headers=auth_header(user["token"]),
        )

        assert response.status_code == 202
        assert get_account("driver@example.com").password_hash != old_hash
        old_login = client.post("/login", json={"email": "driver@example.com", "password": STRONG_PASSWORD})
        assert old_login.status_code == 401
        new_login = client.post("/login", json={"email": "driver@example.com", "password": NEW_PASSWORD})
        assert new_login.status_code == 200

    def test_admin_resets_password_without_current(self, client, register_user, admin_token):
        user = register_user()

        response = client.put(
            f"/users/{user['user_id']}",
            json={"password": NEW_PASSWORD},
            headers=auth_header(admin_token),
        )

        assert response.status_code == 202
        login = client.post("/login", json={"email": "driver@example.com", "password": NEW_PASSWORD})
        assert login.status_code == 200

    def test_user_cannot_update_other_account(self, client, register_user):
        first = register_user()
        second = register_user(email="second@example.com")

        response = client.put(
            f"/users/{second['user_id']}",
            json={"full_name": "Hijacked"},
            headers=auth_header(first["token"]),
        )

        assert response.status_code == 403


class TestDeleteUser:
    def test_customer_cannot_delete(self, client, register_user):
        user = register_user()
        response = client.delete(f"/users/{user['user_id']}", headers=auth_header(user["token"]))
        assert response.status_code == 403

    def test_admin_deletes_account_and_token_stops_working(self, client, register_user, admin_token, get_account):
        user = register_user()

        response = client.delete(f"/users/{user['user_id']}", headers=auth_header(admin_token))

        assert response.status_code == 200
        assert response.json()["data"] == {"id": user["user_id"]}
        assert get_account("driver@example.com") is None
        assert client.get("/me", headers=auth_header(user["token"])).status_code == 401

    def test_delete_missing_account(self, client, admin_token):
        response = client.delete("/users/00000000-0000-0000-0000-000000000000", headers=auth_header(admin_token))
        assert response.status_code == 404

    def test_email_can_register_again_after_deletion(self, client, register_user, admin_token):
        user = register_user()
        client.delete(f"/users/{user['user_id']}", headers=auth_header(admin_token))

        assert register_user()["user_id"] != user["user_id"]

    def test_deletion_keeps_audit_history_without_dangling_reference(
        self, client, register_user, admin_token, audit_rows
    ):
        user = register_user()
        assert any(str(row.account_id) == user["user_id"] for row in audit_rows("driver@example.com"))

        client.delete(f"/users/{user['user_id']}", headers=auth_header(admin_token))

        rows = audit_rows("driver@example.com")
        assert {"account.registration_started", "account.verified", "account.deleted"} <= {r.action for r in rows}
        assert all(row.account_id is None for row in rows)
