from datetime import date

from recruit.services.stats import dashboard, job_funnel, month_calendar, parse_month


def candidate(cid, status, job="job_1", source="Referral", follow_at="", next_action="To contact"):
    return {"id": cid, "name": cid, "jobId": job, "status": status, "source": source, "tags": [],
            "follow": {"nextAction": next_action, "followAt": follow_at, "note": ""}}


def test_job_funnel(data):
    data["candidates"] = [
        candidate("a", "Awaiting Round 1"),
        candidate("b", "Round 3 Passed"),
        candidate("c", "Awaiting Offer"),
        candidate("d", "Offer Sent"),
        candidate("e", "Hired"),
        candidate("f", "Rejected"),
        candidate("g", "Hired", job="job_2"),
    ]
    assert job_funnel(data, "job_1") == {"total": 6, "interviewing": 2, "offer": 2, "hired": 1, "rejected": 1}


def test_dashboard_counts(data):
    today = date(2026, 2, 8)
    data["jobs"] = [{"id": "job_1", "title": "Backend Engineer", "state": "open", "headcount": 2}]
    data["candidates"] = [
        candidate("a", "Awaiting Round 1", follow_at="2026-02-07"),
        candidate("b", "Offer Sent", source="Campus"),
        candidate("c", "Hired"),
        candidate("d", "Rejected", follow_at="2026-02-01", next_action="Closed"),
    ]
    data["interviewSchedules"] = [
        {"id": "s1", "candidateId": "a", "round": 1, "scheduledAt": "2026-02-08T10:00"},
        {"id": "s2", "candidateId": "a", "round": 2, "scheduledAt": "2026-02-12T10:00"},
        {"id": "s3", "candidateId": "b", "round": 1, "scheduledAt": "2026-02-01T10:00"},
    ]
    data["interviews"] = [{"id": "r1", "candidateId": "b", "round": 1, "rating": "A"}]

    stats = dashboard(data, today=today)

    assert stats["total"] == 4
    assert stats["open_jobs"] == 1
    assert stats["interviewing"] == 1
    assert stats["offer_stage"] == 1
    assert stats["offer_rate"] == 50
    assert stats["hire_rate"] == 25
    assert stats["today_interviews"] == 1
    assert stats["week_interviews"] == 2
    assert stats["pending_review_count"] == 1
    assert [c["id"] for c in stats["overdue"]] == ["a"]
    assert stats["sources"][0] == ("Referral", 3)
    assert stats["job_progress"][0]["pct"] == 50


def test_parse_month():
    today = date(2026, 2, 8)
    assert parse_month("2025-12", today) == (2025, 12)
    assert parse_month("2025-13", today) == (2026, 2)
    assert parse_month("garbage", today) == (2026, 2)
    assert parse_month(None, today) == (2026, 2)


def test_month_calendar(data):
    data["candidates"] = [candidate("a", "Awaiting Round 1")]
    data["interviewSchedules"] = [
        {"id": "s2", "candidateId": "a", "round": 2, "scheduledAt": "2026-02-08T15:00"},
        {"id": "s1", "candidateId": "a", "round": 1, "scheduledAt": "2026-02-08T09:00"},
        {"id": "s3", "candidateId": "gone", "round": 1, "scheduledAt": "2026-03-01T09:00"},
    ]
    cal = month_calendar(data, 2026, 2)

    # February 2026 starts on a Sunday
    assert cal["weeks"][0][0]["day"] == 1
    assert len(cal["weeks"]) == 4
    cell = next(c for week in cal["weeks"] for c in week if c["date"] == "2026-02-08")
    assert [s["id"] for s in cell["entries"]] == ["s1", "s2"]
    assert cell["entries"][0]["candidate"]["name"] == "a"
    assert (cal["prev"], cal["next"]) == ("2026-01", "2026-03")
    assert month_calendar(data, 2026, 1)["prev"] == "2025-12"
