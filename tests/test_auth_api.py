import pytest

from conftest import DEFAULT_PASSWORD

pytestmark = pytest.mark.integration


def _register_payload(**over):
    data = {
        "username": "newbie",
        "email": "newbie@example.com",
        "password": "Abcdefgh1!",
        "first_name": "New",
        "last_name": "Member",
        "date_of_birth": "1990-05-05",
    }
    data.update(over)
    return data


class TestRegistration:
    def test_register_starts_session(self, client):
        r = client.post("/api/auth/register", json=_register_payload())
        assert r.status_code == 201
        assert "hashed_password" not in r.json()
        assert client.get("/api/auth/user").json()["username"] == "newbie"

    def test_weak_password_message_is_verbatim(self, client):
        r = client.post("/api/auth/register", json=_register_payload(password="abcdefghij1!"))
        assert r.status_code == 400
        assert r.json()["message"] == "Password must contain at least one uppercase letter"

    def test_underage(self, client):
        r = client.post("/api/auth/register", json=_register_payload(date_of_birth="2020-01-01"))
        assert r.status_code == 400
        assert "18 years old" in r.json()["message"]

    def test_duplicate_username_case_insensitive(self, client, make_user):
        make_user("Newbie")
        r = client.post("/api/auth/register", json=_register_payload())
        assert r.status_code == 400
        assert r.json()["message"] == "Username already exists"

    def test_bad_username(self, client):
        r = client.post("/api/auth/register", json=_register_payload(username="has space"))
        assert r.status_code == 400


class TestLogin:
    def test_invalid_credentials(self, client, make_user, login):
        make_user("alice")
        r = login("alice", "Wrong!Pass1")
        assert r.status_code == 401
        assert r.json() == {"message": "Invalid credentials"}

    def test_success(self, client, make_user, login):
        make_user("alice")
        r = login("alice")
        assert r.status_code == 200
        assert "require_password_reset" not in r.json() or r.json()["require_password_reset"] is False
        assert client.get("/api/auth/user").status_code == 200

    def test_suspended(self, client, make_user, login):
        make_user("alice", is_suspended=True)
        r = login("alice")
        assert r.status_code == 403
        assert client.get("/api/auth/user").status_code == 401

    def test_logout(self, client, make_user, login):
        make_user("alice")
        login("alice")
        client.post("/api/auth/logout")
        assert client.get("/api/auth/user").status_code == 401

    def test_unauthenticated_message(self, client):
        r = client.get("/api/auth/user")
        assert r.status_code == 401
        assert r.json()["message"] == "Authentication required."


class TestForcedGates:
    def test_password_reset_gate(self, client, make_user, login):
        make_user("alice", require_password_reset=True)
        r = login("alice")
        assert r.status_code == 200
        assert r.json()["require_password_reset"] is True
        # нормальной сессии ещё нет
        assert client.get("/api/auth/user").status_code == 401
        assert client.post("/api/posts", json={}).status_code == 401

        r = client.post("/api/auth/change-password", json={
            "current_password": DEFAULT_PASSWORD,
            "new_password": "Fresh!Pass12",
            "confirm_password": "Fresh!Pass12",
        })
        assert r.status_code == 200
        me = client.get("/api/auth/user")
        assert me.status_code == 200
        assert me.json()["require_password_reset"] is False

    def test_gate_stays_when_change_fails(self, client, make_user, login):
        make_user("alice", require_password_reset=True)
        login("alice")
        r = client.post("/api/auth/change-password", json={
            "current_password": DEFAULT_PASSWORD,
            "new_password": DEFAULT_PASSWORD,
            "confirm_password": DEFAULT_PASSWORD,
        })
        assert r.status_code == 400
        assert "last 4 passwords" in r.json()["message"]
        assert client.get("/api/auth/user").status_code == 401

    def test_username_change_gate(self, client, make_user, login):
        make_user("badname", require_username_change=True)
        r = login("badname")
        assert r.json()["require_username_change"] is True
        assert client.get("/api/auth/user").status_code == 401

        r = client.put("/api/profile/change-username", json={"new_username": "goodname"})
        assert r.status_code == 200
        me = client.get("/api/auth/user").json()
        assert me["username"] == "goodname"
        assert me["require_username_change"] is False

    def test_both_flags_password_first(self, client, make_user, login):
        make_user("badname", require_password_reset=True, require_username_change=True)
        r = login("badname")
        assert r.json().get("require_password_reset") is True
        assert "require_username_change" not in r.json() or r.json()["require_username_change"] is True

        r = client.post("/api/auth/change-password", json={
            "current_password": DEFAULT_PASSWORD,
            "new_password": "Fresh!Pass12",
        })
        assert r.json()["require_username_change"] is True
        assert client.get("/api/auth/user").status_code == 401

        client.put("/api/profile/change-username", json={"new_username": "goodname"})
        assert client.get("/api/auth/user").status_code == 200

    def test_change_password_requires_some_session(self, client):
        r = client.post("/api/auth/change-password", json={})
        assert r.status_code == 401

    def test_legacy_plain_text_user_flow(self, client, make_user, login, db):
        from exchange.services.passwords import migrate_legacy_passwords

        make_user("oldtimer", hashed_password="legacy-secret")
        migrate_legacy_passwords(db)

        r = login("oldtimer", "legacy-secret")
        assert r.json()["require_password_reset"] is True
        r = client.post("/api/auth/change-password", json={
            "current_password": "legacy-secret",
            "new_password": "Fresh!Pass12",
        })
        assert r.status_code == 200
        assert client.get("/api/auth/user").status_code == 200


class TestMalformedBodies:
    @pytest.mark.parametrize("body", [
        {"username": "alice", "password": 1234567890},
        {"username": 12345, "password": DEFAULT_PASSWORD},
        {"username": ["alice"], "password": DEFAULT_PASSWORD},
        {"username": "alice", "password": None},
    ])
    def test_login(self, client, make_user, body):
        make_user("alice")
        r = client.post("/api/auth/login", json=body)
        assert r.status_code == 400
        assert "message" in r.json()

    @pytest.mark.parametrize("field, value", [
        ("username", 12345),
        ("password", 1234567890),
        ("email", {"x": 1}),
    ])
    def test_register(self, client, field, value):
        r = client.post("/api/auth/register", json=_register_payload(**{field: value}))
        assert r.status_code == 400
        assert "message" in r.json()

    @pytest.mark.parametrize("body", [
        {"current_password": DEFAULT_PASSWORD, "new_password": 1234567890123},
        {"current_password": 42, "new_password": "Fresh!Pass12"},
    ])
    def test_change_password(self, client, make_user, login, body):
        login(make_user("alice"))
        r = client.post("/api/auth/change-password", json=body)
        assert r.status_code == 400
        assert "message" in r.json()

    def test_change_username(self, client, make_user, login):
        login(make_user("alice"))
        r = client.put("/api/profile/change-username", json={"new_username": 777})
        assert r.status_code == 400
        assert r.json()["message"] == "Username is required"
