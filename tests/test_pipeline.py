from datetime import date

import pytest

from recruit.services import pipeline
from recruit.services.pipeline import PipelineError


@pytest.fixture
def candidate(data):
    data["jobs"].append({"id": "job_1", "title": "Backend Engineer"})
    return pipeline.create_candidate(data, {"name": "Zhang San", "jobId": "job_1"}, "Tester")


def test_create_candidate_requires_name_and_job(data):
    with pytest.raises(PipelineError):
        pipeline.create_candidate(data, {"name": "", "jobId": "job_1"}, "Tester")
    with pytest.raises(PipelineError):
        pipeline.create_candidate(data, {"name": "Zhang San"}, "Tester")
    assert data["candidates"] == []


def test_create_candidate_defaults(data, candidate):
    assert candidate["status"] == "Pending Screening"
    assert candidate["jobTitle"] == "Backend Engineer"
    assert candidate["follow"]["nextAction"] == "To contact"
    assert candidate["id"].startswith("c_")
    assert data["events"][0]["type"] == "Created"


def test_new_sources_and_tags_are_remembered(data):
    pipeline.create_candidate(data, {"name": "Li Si", "jobId": "job_x", "source": "Campus",
                                     "tags": ["Night owl"]}, "Tester")
    assert "Campus" in data["sources"]
    assert "Night owl" in data["tags"]


@pytest.mark.parametrize("value, expected", [
    ("Round 2 Passed", "Round 2 Passed"),
    ("Hired", "Hired"),
    ("nonsense", "Pending Screening"),
    ("", "Pending Screening"),
    (None, "Pending Screening"),
])
def test_normalize_status(value, expected):
    assert pipeline.normalize_status(value) == expected


@pytest.mark.parametrize("rating, round_no, submitted, expected", [
    ("S", 1, "Awaiting Round 1", "Round 1 Passed"),
    ("A", 3, "Awaiting Round 3", "Round 3 Passed"),
    ("B+", 2, "Awaiting Round 2", "Round 2 Passed"),
    ("B", 2, "Awaiting Round 2", "Awaiting Round 2"),
    ("", 2, "Awaiting Round 2", "Awaiting Round 2"),
    ("B-", 2, "Awaiting Round 2", "Awaiting Round 2"),
    ("C", 4, "Awaiting Round 4", "Awaiting Round 4"),
    ("S", 5, "Awaiting Round 5", "Awaiting Offer"),
    ("B+", 5, "Awaiting Round 5", "Awaiting Offer"),
])
def test_review_transition(rating, round_no, submitted, expected):
    status, _ = pipeline.review_transition(submitted, rating, round_no)
    assert status == expected


def test_low_rating_only_advises(data, candidate):
    _, message = pipeline.review_transition("Awaiting Round 1", "C", 1)
    assert "Rejected" in message
    _, message = pipeline.review_transition("Awaiting Round 1", "B", 1)
    assert message == ""


def test_review_sets_follow_up(data, candidate):
    pipeline.submit_review(data, candidate, {"round": 1, "status": "Awaiting Round 1", "rating": "A",
                                             "interviewer": "Li Lei"}, "Li Lei")
    assert candidate["status"] == "Round 1 Passed"
    assert candidate["follow"]["nextAction"] == "Schedule next round"
    assert candidate["follow"]["followAt"] > date.today().isoformat()


def test_review_rejected_closes_follow_up(data, candidate):
    candidate["follow"]["note"] = "call back"
    pipeline.submit_review(data, candidate, {"round": 2, "status": "Rejected", "rating": "B"}, "Li Lei")
    assert candidate["status"] == "Rejected"
    assert candidate["follow"]["nextAction"] == "Closed"
    assert candidate["follow"]["note"] == "call back\nRound 2 rejected"


def test_follow_after_review_uses_today():
    c = {"status": "Round 3 Passed", "follow": {}}
    pipeline.follow_after_review(c, 3, today=date(2026, 3, 1))
    assert c["follow"] == {"nextAction": "Schedule next round", "followAt": "2026-03-03"}


def test_review_validation(data, candidate):
    with pytest.raises(PipelineError, match="invalid_round"):
        pipeline.submit_review(data, candidate, {"round": 6}, "Tester")
    with pytest.raises(PipelineError, match="invalid_rating"):
        pipeline.submit_review(data, candidate, {"round": 1, "rating": "A+"}, "Tester")
    with pytest.raises(PipelineError, match="invalid_status"):
        pipeline.submit_review(data, candidate, {"round": 1, "status": "Maybe"}, "Tester")
    assert data["interviews"] == []


def test_one_review_per_round_and_interviewer(data, candidate):
    first, _ = pipeline.submit_review(data, candidate, {"round": 1, "rating": "B", "interviewer": "A"}, "A")
    again, _ = pipeline.submit_review(data, candidate, {"round": 1, "rating": "A", "interviewer": "A"}, "A")
    pipeline.submit_review(data, candidate, {"round": 1, "rating": "S", "interviewer": "B"}, "B")
    assert again["id"] == first["id"]
    assert len(data["interviews"]) == 2


def test_review_keeps_only_known_dimensions(data, candidate):
    review, _ = pipeline.submit_review(data, candidate, {
        "round": 1, "rating": "A", "dimensions": {"tech": "4", "comm": 9, "mood": 3, "logic": ""},
    }, "Tester")
    assert review["dimensions"] == {"tech": 4}


@pytest.mark.parametrize("current, round_no, expected", [
    ("Pending Screening", 1, "Awaiting Round 1"),
    ("Resume Screening", 1, "Awaiting Round 1"),
    ("Round 1 Passed", 2, "Awaiting Round 2"),
    ("Awaiting Round 1", 2, "Awaiting Round 2"),
    ("Round 4 Passed", 5, "Awaiting Round 5"),
    ("Round 2 Passed", 2, None),
    ("Hired", 1, None),
])
def test_schedule_transition(current, round_no, expected):
    assert pipeline.schedule_transition(current, round_no) == expected


def test_schedule_moves_candidate_and_follow_up(data, candidate):
    item = pipeline.upsert_schedule(data, candidate, {"round": 1, "scheduledAt": "2026-02-08T14:00",
                                                      "interviewers": "Li Lei / Han Meimei"}, "Tester")
    assert candidate["status"] == "Awaiting Round 1"
    assert candidate["follow"]["nextAction"] == "Awaiting feedback"
    assert candidate["follow"]["followAt"] == "2026-02-08"

    again = pipeline.upsert_schedule(data, candidate, {"round": 1, "scheduledAt": "2026-02-09T10:00"}, "Tester")
    assert again["id"] == item["id"]
    assert again["createdAt"] == item["createdAt"]
    assert len(data["interviewSchedules"]) == 1


def test_schedule_without_time_keeps_status(data, candidate):
    pipeline.upsert_schedule(data, candidate, {"round": 1}, "Tester")
    assert candidate["status"] == "Pending Screening"


def test_schedule_explicit_sync_status(data, candidate):
    pipeline.upsert_schedule(data, candidate, {"round": 3, "scheduledAt": "2026-02-08 09:00",
                                               "syncStatus": "Awaiting Round 3"}, "Tester")
    assert candidate["status"] == "Awaiting Round 3"


def test_parse_interviewers():
    assert pipeline.parse_interviewers("Li Lei/Han, Wang;Zhao，Qian") == ["Li Lei", "Han", "Wang", "Zhao", "Qian"]
    assert pipeline.parse_interviewers("") == []


def test_offer_accepted_moves_candidate(data, candidate):
    offer = pipeline.upsert_offer(data, candidate, {"salary": "30k", "offerStatus": "Accepted"}, "Tester")
    assert candidate["status"] == "Offer Sent"
    again = pipeline.upsert_offer(data, candidate, {"salary": "32k", "offerStatus": "bogus"}, "Tester")
    assert again["id"] == offer["id"]
    assert again["offerStatus"] == "Pending"
    assert len(data["offers"]) == 1


def test_offer_accepted_keeps_hired(data, candidate):
    candidate["status"] = "Hired"
    pipeline.upsert_offer(data, candidate, {"offerStatus": "Accepted"}, "Tester")
    assert candidate["status"] == "Hired"


def test_delete_candidate_cascades(data, candidate):
    cid = candidate["id"]
    pipeline.upsert_schedule(data, candidate, {"round": 1, "scheduledAt": "2026-02-08 09:00"}, "Tester")
    pipeline.submit_review(data, candidate, {"round": 1, "rating": "A"}, "Tester")
    pipeline.upsert_offer(data, candidate, {}, "Tester")
    data["resumeFiles"].append({"id": "rf_1", "candidateId": cid, "url": "/uploads/x.pdf"})

    assert pipeline.delete_candidate(data, cid)
    for key in ("candidates", "interviews", "interviewSchedules", "resumeFiles", "events", "offers"):
        assert all(x.get("candidateId") != cid for x in data[key])
    assert data["candidates"] == []
    assert not pipeline.delete_candidate(data, cid)


def test_average_score():
    assert pipeline.average_score([{"rating": "S"}, {"rating": "B"}, {"rating": ""}]) == 4.0
    assert pipeline.average_score([]) is None
