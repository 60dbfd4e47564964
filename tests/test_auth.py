from recruit.services.feishu import FeishuClient


def test_login_registers_dev_user(client, store):
    resp = client.post("/login", data={"name": "Li Lei"})
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/candidates")
    users = store.load()["users"]
    assert [(u["name"], u["provider"], u["role"]) for u in users] == [("Li Lei", "dev", "interviewer")]

    client.post("/login", data={"name": "Li Lei"})
    assert len(store.load()["users"]) == 1


def test_blank_name_is_refused(client):
    resp = client.post("/login", data={"name": "  "})
    assert resp.headers["Location"].endswith("/login")
    assert client.get("/candidates").status_code == 302


def test_logout_clears_session(login):
    client = login()
    assert client.get("/candidates").status_code == 200
    client.get("/logout")
    assert client.get("/candidates").status_code == 302


def test_settings_is_admin_only(login):
    client = login("Bob")
    assert client.get("/settings").status_code == 403
    assert client.post("/settings/sources", data={"source": "Campus"}).status_code == 403


def test_admin_manages_vocabularies(login, store):
    client = login("Admin")
    assert client.get("/settings").status_code == 200
    client.post("/settings/sources", data={"source": "Campus"})
    client.post("/settings/tags", data={"tag": "Night owl"})
    client.post("/settings/tags", data={"tag": "Night owl"})
    d = store.load()
    assert "Campus" in d["sources"]
    assert d["tags"].count("Night owl") == 1


def test_directory_sync_needs_feishu(login):
    client = login("Admin")
    resp = client.post("/api/users/sync-feishu")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/settings")


def test_feishu_login_disabled_redirects(client):
    assert client.get("/auth/feishu").headers["Location"].endswith("/login")
    assert client.get("/auth/feishu/callback").headers["Location"].endswith("/login")


class FakeResponse:
    def __init__(self, data):
        self._data = data

    def json(self):
        return self._data


class CannedSession:
    def __init__(self, *answers):
        self.answers = list(answers)

    def request(self, method, url, **kwargs):
        return FakeResponse(self.answers.pop(0))


def _enable_feishu(app, *answers):
    app.extensions["feishu"] = FeishuClient("cli_app", "secret", "https://hr.example.com/cb",
                                            session=CannedSession(*answers))


PROFILE = ({"code": 0, "tenant_access_token": "t-1", "expire": 7200},
           {"code": 0, "data": {"open_id": "ou_1", "name": "Li Lei"}})


def test_feishu_callback_without_state_is_refused(app, client):
    _enable_feishu(app, *PROFILE)
    resp = client.get("/auth/feishu/callback?code=x")
    assert resp.headers["Location"].endswith("/login")
    assert client.get("/candidates").status_code == 302


def test_feishu_callback_with_wrong_state_is_refused(app, client):
    _enable_feishu(app, *PROFILE)
    with client.session_transaction() as sess:
        sess["oauth_state"] = "s1"
    resp = client.get("/auth/feishu/callback?code=x&state=other")
    assert resp.headers["Location"].endswith("/login")
    assert client.get("/candidates").status_code == 302


def test_feishu_callback_with_matching_state_signs_in(app, client, store):
    _enable_feishu(app, *PROFILE)
    assert "state=" in client.get("/auth/feishu").headers["Location"]
    with client.session_transaction() as sess:
        state = sess["oauth_state"]
    resp = client.get(f"/auth/feishu/callback?code=x&state={state}")
    assert resp.headers["Location"].endswith("/candidates")
    assert client.get("/candidates").status_code == 200
    assert [u["openId"] for u in store.load()["users"]] == ["ou_1"]


def test_bearer_token(app, login, seeded):
    client = login("Admin")
    resp = client.post("/api/auth/token")
    token = resp.get_json()["access_token"]

    anonymous = app.test_client()
    assert anonymous.post("/api/auth/token").status_code == 401
    resp = anonymous.get(f"/api/candidates/{seeded}", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.get_json()["name"] == "Zhang San"

    bad = anonymous.get(f"/api/candidates/{seeded}", headers={"Authorization": "Bearer not-a-token"})
    assert bad.status_code == 401


def test_sync_directory_merges_by_open_id(app, data):
    from recruit.services.auth import AuthService

    data["users"].append({"id": "usr_1", "openId": "ou_1", "name": "Old", "role": "interviewer"})
    with app.app_context():
        added, updated = AuthService.sync_directory(data, [
            {"openId": "ou_1", "name": "Li Lei"},
            {"openId": "ou_2", "name": "Han Meimei"},
            {"openId": "", "name": "Ghost"},
        ])
    assert (added, updated) == (1, 1)
    assert [u["name"] for u in data["users"]] == ["Li Lei", "Han Meimei"]
