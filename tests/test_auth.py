from yummio_api.security import TokenKind, validate_token
from yummio_api.services.notifier import get_notifier

API = "/api/v1/auth"


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, address, reset_token):
        self.sent.append((address, reset_token))


class BrokenNotifier:
    def send(self, address, reset_token):
        raise RuntimeError("smtp down")


def test_register_then_login(client):
    r = client.post(f"{API}/register", json={"name": "Ann", "email": "ann@x.com", "password": "secret1"})
    assert r.status_code == 201
    body = r.json()
    assert body["user"]["email"] == "ann@x.com"
    assert "password_hash" not in body["user"]
    assert body["token_type"] == "bearer"
    user_id = body["user"]["id"]

    r = client.post(f"{API}/login", json={"email": "ann@x.com", "password": "secret1"})
    assert r.status_code == 200
    claims = validate_token(r.json()["access_token"])
    assert claims.kind is TokenKind.access
    assert claims.subject == user_id
    assert validate_token(r.json()["refresh_token"]).kind is TokenKind.refresh


def test_login_email_is_case_insensitive(client, register):
    register(email="Bob@Example.com")
    r = client.post(f"{API}/login", json={"email": "bob@example.com", "password": "secret1"})
    assert r.status_code == 200


def test_wrong_password_is_generic(client, register):
    ann = register()
    wrong = client.post(f"{API}/login", json={"email": ann.email, "password": "nope123"})
    unknown = client.post(f"{API}/login", json={"email": "ghost@example.com", "password": "secret1"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["detail"] == unknown.json()["detail"] == "invalid email or password"


def test_register_duplicate_email_conflict(client, register):
    ann = register()
    r = client.post(f"{API}/register", json={"name": "Ann 2", "email": ann.email.upper(), "password": "secret1"})
    assert r.status_code == 409
    assert r.json()["code"] == "conflict"


def test_register_validation(client):
    r = client.post(f"{API}/register", json={"name": "A", "email": "not-an-email", "password": "123"})
    assert r.status_code == 422
    assert r.json()["code"] == "validation_error"


def test_refresh_requires_refresh_kind(client, register):
    ann = register()
    r = client.post(f"{API}/refresh", json={"refresh_token": ann.refresh_token})
    assert r.status_code == 200
    assert validate_token(r.json()["access_token"]).subject == ann.id

    r = client.post(f"{API}/refresh", json={"refresh_token": ann.access_token})
    assert r.status_code == 401
    r = client.post(f"{API}/refresh", json={"refresh_token": "garbage"})
    assert r.status_code == 401


def test_forgot_password_never_reveals_existence(client, register):
    notifier = RecordingNotifier()
    client.app.dependency_overrides[get_notifier] = lambda: notifier
    ann = register()

    known = client.post(f"{API}/forgot-password", json={"email": ann.email})
    unknown = client.post(f"{API}/forgot-password", json={"email": "ghost@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert [addr for addr, _ in notifier.sent] == [ann.email]
    assert validate_token(notifier.sent[0][1]).kind is TokenKind.reset


def test_forgot_password_swallows_notifier_failure(client, register):
    client.app.dependency_overrides[get_notifier] = lambda: BrokenNotifier()
    ann = register()
    r = client.post(f"{API}/forgot-password", json={"email": ann.email})
    assert r.status_code == 200


def test_reset_password_flow(client, register):
    notifier = RecordingNotifier()
    client.app.dependency_overrides[get_notifier] = lambda: notifier
    ann = register()
    client.post(f"{API}/forgot-password", json={"email": ann.email})
    reset_token = notifier.sent[0][1]

    r = client.post(f"{API}/reset-password", json={"token": reset_token, "new_password": "brandnew"})
    assert r.status_code == 200
    assert client.post(f"{API}/login", json={"email": ann.email, "password": "secret1"}).status_code == 401
    assert client.post(f"{API}/login", json={"email": ann.email, "password": "brandnew"}).status_code == 200


def test_reset_password_rejects_other_kinds(client, register):
    ann = register()
    r = client.post(f"{API}/reset-password", json={"token": ann.access_token, "new_password": "brandnew"})
    assert r.status_code == 400
    r = client.post(f"{API}/reset-password", json={"token": "garbage", "new_password": "brandnew"})
    assert r.status_code == 400


def test_reset_token_is_single_use(client, register):
    notifier = RecordingNotifier()
    client.app.dependency_overrides[get_notifier] = lambda: notifier
    ann = register()
    client.post(f"{API}/forgot-password", json={"email": ann.email})
    reset_token = notifier.sent[0][1]

    r = client.post(f"{API}/reset-password", json={"token": reset_token, "new_password": "brandnew"})
    assert r.status_code == 200
    r = client.post(f"{API}/reset-password", json={"token": reset_token, "new_password": "hijacked"})
    assert r.status_code == 400
    assert client.post(f"{API}/login", json={"email": ann.email, "password": "brandnew"}).status_code == 200


def test_reset_token_dies_after_password_change(client, register):
    notifier = RecordingNotifier()
    client.app.dependency_overrides[get_notifier] = lambda: notifier
    ann = register()
    client.post(f"{API}/forgot-password", json={"email": ann.email})
    reset_token = notifier.sent[0][1]

    r = client.post(
        "/api/v1/users/change-password",
        json={"current_password": ann.password, "new_password": "another1"},
        headers=ann.headers,
    )
    assert r.status_code == 200
    r = client.post(f"{API}/reset-password", json={"token": reset_token, "new_password": "brandnew"})
    assert r.status_code == 400


def test_login_unknown_email_still_checks_a_hash(client, register, monkeypatch):
    checked = []

    def _verify(password, password_hash):
        checked.append(password_hash)
        return False

    monkeypatch.setattr("yummio_api.services.auth.verify_password", _verify)
    r = client.post(f"{API}/login", json={"email": "ghost@example.com", "password": "secret1"})
    assert r.status_code == 401
    assert r.json()["detail"] == "invalid email or password"
    assert len(checked) == 1 and checked[0].startswith("$2")
