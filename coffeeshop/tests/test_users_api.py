import jwt

from coffeeshop.core.security import hash_password, verify_password


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("secret", rounds=4)
        assert hashed != "secret"
        assert verify_password("secret", hashed)
        assert not verify_password("wrong", hashed)

    def test_verify_against_malformed_hash(self):
        assert verify_password("secret", "not-a-bcrypt-hash") is False


class TestSignupSignin:
    def test_signup_returns_public_fields_only(self, client):
        response = client.post("/api/users/signup", json={
            "username": "alice",
            "email": "Alice@Example.com",
            "password": "pw123456",
        })
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User created successfully"
        assert body["data"]["user"] == {"id": 1, "username": "alice", "email": "alice@example.com"}

    def test_signup_requires_all_fields(self, client):
        response = client.post("/api/users/signup", json={"email": "a@example.com"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_duplicate_username_or_email_ignores_case(self, client, register_user):
        register_user()
        response = client.post("/api/users/signup", json={
            "username": "ALICE", "email": "other@example.com", "password": "pw",
        })
        assert response.status_code == 409
        assert response.json()["message"] == "Username already taken"

        response = client.post("/api/users/signup", json={
            "username": "bob", "email": "ALICE@example.com", "password": "pw",
        })
        assert response.status_code == 409
        assert response.json()["message"] == "Email already registered"

    def test_signin_issues_token(self, client, settings, register_user):
        register_user()
        response = client.post("/api/users/signin", json={"email": "alice@example.com", "password": "s3cret-pass"})
        assert response.status_code == 200
        data = response.json()["data"]
        payload = jwt.decode(data["token"], settings.jwt_secret, algorithms=["HS256"])
        assert payload["userId"] == data["user"]["id"]
        assert payload["email"] == "alice@example.com"
        assert "exp" in payload
        assert "passwordHash" not in data["user"]

    def test_signin_errors_do_not_reveal_which_part_failed(self, client, register_user):
        register_user()
        wrong_password = client.post("/api/users/signin", json={"email": "alice@example.com", "password": "nope"})
        unknown_email = client.post("/api/users/signin", json={"email": "ghost@example.com", "password": "nope"})
        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()["message"] == "Invalid credentials"

    def test_signin_records_last_login(self, client, register_user, uow_factory):
        user_id, _ = register_user()
        with uow_factory() as uow:
            assert uow.users.find_by_id(user_id).last_login is not None


class TestProfile:
    def test_profile_requires_token(self, client):
        response = client.get("/api/users/profile")
        assert response.status_code == 401
        assert response.json()["message"] == "No token, authorization denied"

    def test_profile_rejects_bad_token(self, client):
        response = client.get("/api/users/profile", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    def test_get_profile(self, client, register_user):
        user_id, headers = register_user()
        response = client.get("/api/users/profile", headers=headers)
        assert response.status_code == 200
        user = response.json()["data"]["user"]
        assert user["id"] == user_id
        assert user["displayName"] == "alice"
        assert user["preferences"] == {"notifications": True, "newsletter": True, "language": "fa"}
        assert "passwordHash" not in user

    def test_change_password_requires_current_password(self, client, register_user):
        _, headers = register_user()
        response = client.put("/api/users/profile", json={"newPassword": "new-pass"}, headers=headers)
        assert response.status_code == 400

        response = client.put(
            "/api/users/profile",
            json={"currentPassword": "wrong", "newPassword": "new-pass"},
            headers=headers,
        )
        assert response.status_code == 401

        response = client.put(
            "/api/users/profile",
            json={"currentPassword": "s3cret-pass", "newPassword": "new-pass"},
            headers=headers,
        )
        assert response.status_code == 200
        signin = client.post("/api/users/signin", json={"email": "alice@example.com", "password": "new-pass"})
        assert signin.status_code == 200

    def test_update_username_conflict(self, client, register_user):
        register_user()
        _, bob_headers = register_user(username="bob", email="bob@example.com")
        response = client.put("/api/users/profile", json={"username": "Alice"}, headers=bob_headers)
        assert response.status_code == 409

        response = client.put("/api/users/profile", json={"username": "bobby"}, headers=bob_headers)
        assert response.status_code == 200
        assert response.json()["data"]["user"]["username"] == "bobby"

    def test_delete_profile_needs_password(self, client, register_user):
        _, headers = register_user()
        response = client.request("DELETE", "/api/users/profile", json={"password": "wrong"}, headers=headers)
        assert response.status_code == 401

        response = client.request("DELETE", "/api/users/profile", json={"password": "s3cret-pass"}, headers=headers)
        assert response.status_code == 200
        assert client.get("/api/users/profile", headers=headers).status_code == 404

    def test_token_of_deleted_user_does_not_reach_new_account(self, client, register_user):
        alice_id, alice_headers = register_user()
        client.request("DELETE", "/api/users/profile", json={"password": "s3cret-pass"}, headers=alice_headers)

        bob_id, _ = register_user(username="bob", email="bob@example.com")
        assert bob_id != alice_id
        response = client.get("/api/users/profile", headers=alice_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"

    def test_update_other_user_is_forbidden(self, client, register_user):
        alice_id, _ = register_user()
        bob_id, bob_headers = register_user(username="bob", email="bob@example.com")

        response = client.put(f"/api/users/update/{alice_id}", json={"username": "mallory"}, headers=bob_headers)
        assert response.status_code == 403

        response = client.put(f"/api/users/update/{bob_id}", json={"email": "Robert@Example.com"}, headers=bob_headers)
        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == "robert@example.com"
