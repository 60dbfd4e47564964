import json

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from recruit.databases import RecordStore, ensure_data_shape, merge_missing
from recruit.extensions import db
from recruit.models import Candidate, Job, Offer


def full_dataset():
    d = ensure_data_shape({})
    d["jobs"].append({"id": "job_1", "title": "Backend Engineer", "headcount": 2, "state": "open",
                      "createdAt": "2026-01-01T00:00:00.000Z"})
    d["candidates"].append({
        "id": "c_1", "name": "Zhang San", "phone": "13800000000", "email": "zs@example.com",
        "jobId": "job_1", "jobTitle": "Backend Engineer", "source": "Referral", "note": "",
        "tags": ["Urgent", "Excellent"], "status": "Round 1 Passed",
        "follow": {"nextAction": "Schedule next round", "followAt": "2026-01-03", "note": ""},
        "createdAt": "2026-01-01T00:00:00.000Z", "updatedAt": "2026-01-01T00:00:00.000Z",
    })
    d["interviews"].append({"id": "rv_1", "candidateId": "c_1", "round": 1, "status": "Awaiting Round 1",
                            "rating": "A", "interviewer": "Li Lei", "dimensions": {"tech": 4, "comm": 5}})
    d["interviewSchedules"].append({"id": "sc_1", "candidateId": "c_1", "round": 1,
                                    "scheduledAt": "2026-01-02T10:00", "interviewers": "Li Lei"})
    d["resumeFiles"].append({"id": "rf_1", "candidateId": "c_1", "filename": "r.pdf", "url": "/uploads/r.pdf",
                             "storage": "local", "size": 10})
    d["events"].append({"id": "ev_1", "candidateId": "c_1", "type": "Created", "message": "hi", "actor": "Tester"})
    d["offers"].append({"id": "offer_1", "candidateId": "c_1", "jobId": "job_1", "salary": "30k",
                        "offerStatus": "Sent"})
    d["users"].append({"id": "usr_1", "openId": "ou_1", "name": "Li Lei", "role": "admin", "provider": "feishu"})
    return d


class TestLocalDocument:
    def test_missing_file_is_initialised(self, tmp_path):
        path = tmp_path / "nested" / "data.json"
        d = RecordStore(str(path)).load()
        assert d["candidates"] == []
        assert "Referral" in d["sources"]
        assert path.exists()

    def test_save_then_load_keeps_records(self, tmp_path):
        store = RecordStore(str(tmp_path / "data.json"))
        store.save(full_dataset())
        d = store.load()
        assert [c["id"] for c in d["candidates"]] == ["c_1"]
        assert d["interviews"][0]["dimensions"] == {"tech": 4, "comm": 5}
        assert not (tmp_path / "data.json.tmp").exists()

    def test_unknown_status_is_coerced_on_load(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text(json.dumps({"candidates": [{"id": "c_1", "name": "X", "status": "Ghosted"}]}))
        c = RecordStore(str(path)).load()["candidates"][0]
        assert c["status"] == "Pending Screening"
        assert c["tags"] == []
        assert c["follow"]["nextAction"] == "To contact"

    def test_corrupt_file_loads_empty(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{not json")
        assert RecordStore(str(path)).load()["jobs"] == []

    def test_ephemeral_store_never_writes(self, tmp_path):
        path = tmp_path / "data.json"
        store = RecordStore(str(path), ephemeral=True)
        store.save(full_dataset())
        assert not path.exists()
        assert store.load()["candidates"] == []


def test_merge_missing_adds_local_only_records():
    remote = full_dataset()
    local = full_dataset()
    local["jobs"].append({"id": "job_local", "title": "Designer"})
    remote["resumeFiles"][0]["url"] = ""

    merge_missing(remote, local)

    assert [j["id"] for j in remote["jobs"]] == ["job_1", "job_local"]
    assert len(remote["candidates"]) == 1
    assert remote["resumeFiles"][0]["url"] == "/uploads/r.pdf"


class TestRemoteMirror:
    @pytest.fixture
    def ctx(self, remote_app):
        with remote_app.app_context():
            yield remote_app

    def test_round_trip_through_tables(self, ctx, tmp_path):
        store = RecordStore(str(tmp_path / "unused.json"), ephemeral=True, remote_enabled=True)
        store.save(full_dataset())
        d = store.load()

        for key in ("jobs", "candidates", "interviews", "interviewSchedules", "resumeFiles", "events",
                    "offers", "users"):
            assert len(d[key]) == 1, key
        c = d["candidates"][0]
        assert c["tags"] == ["Urgent", "Excellent"]
        assert c["follow"]["followAt"] == "2026-01-03"
        assert d["interviews"][0]["dimensions"] == {"tech": 4, "comm": 5}
        assert d["offers"][0]["offerStatus"] == "Sent"
        assert d["users"][0]["openId"] == "ou_1"
        assert "Excellent" in d["tags"]

    def test_local_records_missing_remotely_are_merged(self, ctx):
        store = ctx.extensions["record_store"]
        local = ensure_data_shape({})
        local["jobs"].append({"id": "job_local", "title": "Designer"})
        store.save_local(local)
        db.session.merge(Job(id="job_remote", title="Backend Engineer"))
        db.session.commit()

        ids = {j["id"] for j in store.load()["jobs"]}
        assert ids == {"job_local", "job_remote"}

    def test_missing_optional_table_is_tolerated(self, ctx, tmp_path):
        store = RecordStore(str(tmp_path / "unused.json"), ephemeral=True, remote_enabled=True)
        db.session.merge(Job(id="job_remote", title="Backend Engineer"))
        db.session.commit()
        Offer.__table__.drop(db.engine)

        d = store.load()
        assert d["offers"] == []
        assert [j["id"] for j in d["jobs"]] == ["job_remote"]

    def test_required_table_failure_falls_back_to_local(self, ctx):
        store = ctx.extensions["record_store"]
        local = ensure_data_shape({})
        local["jobs"].append({"id": "job_local", "title": "Designer"})
        store.save_local(local)
        Job.__table__.drop(db.engine)

        assert [j["id"] for j in store.load()["jobs"]] == ["job_local"]

    def test_rejected_upsert_retries_with_reduced_columns(self, ctx, tmp_path, monkeypatch):
        store = RecordStore(str(tmp_path / "unused.json"), ephemeral=True, remote_enabled=True)
        real_merge = db.session.merge

        def merge(instance, **kwargs):
            if isinstance(instance, Candidate) and instance.email is not None:
                raise OperationalError("INSERT INTO candidates", {}, Exception("Unknown column 'email'"))
            return real_merge(instance, **kwargs)

        monkeypatch.setattr(db.session, "merge", merge)
        store.save(full_dataset())

        row = db.session.get(Candidate, "c_1")
        assert row.name == "Zhang San"
        assert row.job_title == "Backend Engineer"
        assert row.email is None
        assert db.session.get(Job, "job_1") is not None

    def test_narrow_remote_table_keeps_core_columns(self, ctx, tmp_path):
        store = RecordStore(str(tmp_path / "unused.json"), ephemeral=True, remote_enabled=True)
        Candidate.__table__.drop(db.engine)
        db.session.execute(text(
            "CREATE TABLE candidates (id VARCHAR(64) PRIMARY KEY, name VARCHAR(255), phone VARCHAR(50), "
            "job_id VARCHAR(64), job_title VARCHAR(255), source VARCHAR(255))"
        ))
        db.session.commit()

        d = full_dataset()
        store.save(d)
        select = text("SELECT name, job_title, source FROM candidates WHERE id = 'c_1'")
        assert tuple(db.session.execute(select).one()) == ("Zhang San", "Backend Engineer", "Referral")

        d["candidates"][0]["name"] = "Zhang Sanfeng"
        store.save(d)
        rows = db.session.execute(text("SELECT id, name FROM candidates")).all()
        assert [tuple(r) for r in rows] == [("c_1", "Zhang Sanfeng")]
        assert db.session.get(Job, "job_1") is not None

    def test_delete_candidate_related(self, ctx):
        store = ctx.extensions["record_store"]
        store.save(full_dataset())
        store.delete_candidate_related("c_1")

        d = RecordStore(store.data_path, ephemeral=True, remote_enabled=True).load()
        assert d["candidates"] == []
        assert d["interviews"] == []
        assert d["offers"] == []
        assert [j["id"] for j in d["jobs"]] == ["job_1"]
