"""API tests for OTP-gated registration."""

from datetime import datetime, timedelta, timezone

from conftest import STRONG_PASSWORD


def _register(client, email="driver@example.com", password=STRONG_PASSWORD, full_name="Dana Driver"):
    return client.post(
        "/register",
        json={
            "email": email,
            "password": password,
            "full_name": full_name,
            "address": "1 Garage Lane",
            "phone_number": "+1 555 0100",
        },
    )


def _verify(client, pending_id, otp):
    return client.post("/verify-registration-otp", json={"pending_id": pending_id, "otp": otp})


class TestRegister:
    def test_weak_password_rejected_without_email(self, client, email_sender, get_account):
        response = _register(client, password="weakpassword")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "policy_violation"
        assert body["detail"] == "Password must contain at least one uppercase letter."
        assert email_sender.sent == []
        assert get_account("driver@example.com") is None

    def test_register_stores_placeholder_and_emails_otp(self, client, email_sender, get_account):
        response = _register(client)

        assert response.status_code == 202
        body = response.json()
        assert body["message"] == "Registration initiated. Please verify with OTP."
        assert body["data"]["email"] == "driver@example.com"
        assert body["data"]["otp_expires_in"] == 60

        assert len(email_sender.sent) == 1
        assert email_sender.sent[0].to == "driver@example.com"
        otp = email_sender.last_otp()

        account = get_account("driver@example.com")
        assert str(account.id) == body["data"]["pending_id"]
        assert account.is_verified is False
        assert account.password_hash is None
        assert account.pending_password == STRONG_PASSWORD
        # Only the digest of the code is stored.
        assert account.pending_otp_hash and otp not in account.pending_otp_hash

    def test_email_is_normalized(self, client, get_account):
        response = _register(client, email="Driver@EXAMPLE.com")

        assert response.status_code == 202
        assert response.json()["data"]["email"] == "driver@example.com"
        assert get_account("driver@example.com") is not None

    def test_duplicate_verified_email_rejected(self, client, register_user):
        register_user()

        response = _register(client, email="DRIVER@example.com")

        assert response.status_code == 400
        assert response.json()["error"] == "duplicate_account"
        assert response.json()["detail"] == "Email already registered and verified. Please login."

    def test_reregistration_replaces_unverified_placeholder(self, client, email_sender):
        first = _register(client).json()["data"]["pending_id"]
        first_otp = email_sender.last_otp()
        second = _register(client, full_name="Dana D. Driver").json()["data"]["pending_id"]

        assert first != second
        assert _verify(client, first, first_otp).status_code == 404

        response = _verify(client, second, email_sender.last_otp())
        assert response.status_code == 200
        assert response.json()["data"]["full_name"] == "Dana D. Driver"

    def test_notification_failure_leaves_no_account(self, client, email_sender, get_account):
        email_sender.fail = True

        response = _register(client)

        assert response.status_code == 500
        assert response.json()["error"] == "notification_failure"
        assert get_account("driver@example.com") is None

    def test_invalid_email_rejected_by_schema(self, client):
        assert _register(client, email="not-an-email").status_code == 422


class TestVerifyRegistrationOtp:
    def test_correct_otp_activates_account_and_logs_in(self, client, email_sender, get_account):
        pending_id = _register(client).json()["data"]["pending_id"]

        response = _verify(client, pending_id, email_sender.last_otp())

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token"]
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 86400
        assert data["role"] == "customer"
        assert data["user_id"] == pending_id
        assert data["full_name"] == "Dana Driver"

        account = get_account("driver@example.com")
        assert account.is_verified is True
        assert account.mfa_completed_once is True
        assert account.password_hash.startswith("$argon2id$")
        assert account.pending_password is None
        assert account.pending_otp_hash is None
        assert account.pending_otp_expires_at is None

    def test_token_from_verification_grants_access(self, client, email_sender):
        pending_id = _register(client).json()["data"]["pending_id"]
        token = _verify(client, pending_id, email_sender.last_otp()).json()["data"]["token"]

        response = client.get("/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "driver@example.com"

    def test_otp_cannot_be_replayed(self, client, email_sender):
        pending_id = _register(client).json()["data"]["pending_id"]
        otp = email_sender.last_otp()
        assert _verify(client, pending_id, otp).status_code == 200

        response = _verify(client, pending_id, otp)

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_or_expired_otp"

    def test_replay_does_not_delete_verified_account(self, client, email_sender, get_account):
        pending_id = _register(client).json()["data"]["pending_id"]
        otp = email_sender.last_otp()
        _verify(client, pending_id, otp)
        _verify(client, pending_id, otp)

        assert get_account("driver@example.com").is_verified is True

    def test_wrong_otp_deletes_placeholder(self, client, email_sender, get_account):
        pending_id = _register(client).json()["data"]["pending_id"]
        otp = email_sender.last_otp()
        wrong = "100000" if otp != "100000" else "100001"

        response = _verify(client, pending_id, wrong)

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired OTP. Please re-register."
        assert get_account("driver@example.com") is None
        assert _verify(client, pending_id, otp).status_code == 404

    def test_expired_otp_rejected(self, client, email_sender, set_account_fields, get_account):
        pending_id = _register(client).json()["data"]["pending_id"]
        set_account_fields(
            "driver@example.com",
            pending_otp_expires_at=datetime.now(timezone.utc) - timedelta(seconds=1),
        )

        response = _verify(client, pending_id, email_sender.last_otp())

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_or_expired_otp"
        assert get_account("driver@example.com") is None

    def test_unknown_pending_id(self, client):
        response = _verify(client, "00000000-0000-0000-0000-000000000000", "123456")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_malformed_pending_id(self, client):
        assert _verify(client, "not-a-uuid", "123456").status_code == 404

    def test_otp_format_validated(self, client):
        response = _verify(client, "00000000-0000-0000-0000-000000000000", "12ab56")
        assert response.status_code == 422


class TestResendOtp:
    def test_resend_replaces_code(self, client, email_sender):
        pending_id = _register(client).json()["data"]["pending_id"]
        first_otp = email_sender.last_otp()

        response = client.post("/resend-otp", json={"pending_id": pending_id})

        assert response.status_code == 200
        assert response.json()["data"]["pending_id"] == pending_id
        assert len(email_sender.sent) == 2
        assert "new" in email_sender.sent[-1].subject.lower()

        new_otp = email_sender.last_otp()
        if new_otp != first_otp:
            # The superseded code no longer matches and burns the placeholder.
            assert _verify(client, pending_id, first_otp).status_code == 401
        else:
            assert _verify(client, pending_id, new_otp).status_code == 200

    def test_resent_code_verifies(self, client, email_sender):
        pending_id = _register(client).json()["data"]["pending_id"]
        client.post("/resend-otp", json={"pending_id": pending_id})

        assert _verify(client, pending_id, email_sender.last_otp()).status_code == 200

    def test_verified_account_looks_like_unknown_id(self, client, register_user, email_sender):
        user_id = register_user()["user_id"]
        unknown = client.post("/resend-otp", json={"pending_id": "00000000-0000-0000-0000-000000000000"})

        response = client.post("/resend-otp", json={"pending_id": user_id})

        assert response.status_code == 404
        assert response.json()["error"] == unknown.json()["error"] == "not_found"
        assert response.json()["detail"] == unknown.json()["detail"]
        assert len(email_sender.sent) == 1

    def test_resend_unknown(self, client):
        response = client.post("/resend-otp", json={"pending_id": "00000000-0000-0000-0000-000000000000"})
        assert response.status_code == 404
