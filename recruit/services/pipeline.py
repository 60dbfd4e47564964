"""
Candidate workflow: status changes, interview schedules, reviews,
follow-ups and offers.

Every function mutates the in-memory dataset ``d`` and appends the matching
audit event; callers persist with ``RecordStore.save``.
"""
import re
from datetime import date, timedelta

from recruit.constants import (
    AWAITING_OFFER,
    CLOSED_ACTION,
    DEFAULT_NEXT_ACTION,
    DIMENSION_KEYS,
    FINAL_ROUND,
    HIRED,
    INTERVIEW_RATINGS,
    INTERVIEW_ROUNDS,
    LOW_RATINGS,
    NO_SYNC,
    OFFER_ACCEPTED,
    OFFER_PENDING,
    OFFER_SENT,
    OFFER_STATUSES,
    PASS_THRESHOLD,
    PENDING_SCREENING,
    RATING_SCORES,
    REJECTED,
    RESUME_SCREENING,
    REVIEW_DIMENSIONS,
    STAGE_SET,
    SYSTEM_ACTOR,
    awaiting_round,
    round_passed,
)
from recruit.databases import now_iso, push_event, rid

INTERVIEWER_SEPARATORS = re.compile(r"[/;,，、]+")


class PipelineError(ValueError):
    """A rejected input; ``str(err)`` is the plain-text reason sent to the client."""


def normalize_status(value):
    value = (value or "").strip()
    return value if value in STAGE_SET else PENDING_SCREENING


def parse_round(value):
    try:
        round_no = int(value or 1)
    except (TypeError, ValueError):
        raise PipelineError("invalid_round")
    if round_no not in INTERVIEW_ROUNDS:
        raise PipelineError("invalid_round")
    return round_no


def _text(fields, key, default=""):
    value = fields.get(key)
    return default if value is None else str(value).strip()


def _remember(d, vocabulary, *values):
    for value in values:
        if value and value not in d[vocabulary]:
            d[vocabulary].append(value)


def parse_interviewers(text):
    return [n.strip() for n in INTERVIEWER_SEPARATORS.split(text or "") if n.strip()]


def interviewer_open_ids(d, names):
    """Open ids of known users whose names appear in ``names``."""
    ids = []
    for name in names:
        user = next((u for u in d["users"] if u.get("name") == name and u.get("openId")), None)
        if user and user["openId"] not in ids:
            ids.append(user["openId"])
    return ids


# ==================== CANDIDATES ====================

def create_candidate(d, fields, actor):
    """Build and register a new candidate. Name and job are mandatory."""
    name = _text(fields, "name")
    job_id = _text(fields, "jobId")
    if not name or not job_id:
        raise PipelineError("missing_name_or_job")

    job = next((j for j in d["jobs"] if j["id"] == job_id), None)
    tags = fields.get("tags") or []
    if isinstance(tags, str):
        tags = [tags]
    tags = [t.strip() for t in tags if t and t.strip()]

    ts = now_iso()
    c = {
        "id": rid("c"),
        "name": name,
        "phone": _text(fields, "phone"),
        "email": _text(fields, "email"),
        "jobId": job_id,
        "jobTitle": job["title"] if job else job_id,
        "source": _text(fields, "source"),
        "note": _text(fields, "note"),
        "tags": tags,
        "status": PENDING_SCREENING,
        "follow": {"nextAction": DEFAULT_NEXT_ACTION, "followAt": "", "note": ""},
        "createdAt": ts,
        "updatedAt": ts,
    }
    d["candidates"].insert(0, c)
    _remember(d, "sources", c["source"])
    _remember(d, "tags", *tags)
    push_event(d, c["id"], "Created", f"Created candidate {c['name']} (job: {c['jobTitle'] or '-'})", actor)
    return c


def edit_candidate(d, c, fields, actor):
    """Update contact fields; an empty name keeps the old one."""
    before = dict(c)
    name = _text(fields, "name")
    if name:
        c["name"] = name
    for key in ("phone", "email", "source", "note"):
        c[key] = _text(fields, key)
    if "tags" in fields:
        tags = fields.get("tags") or []
        if isinstance(tags, str):
            tags = [t for t in re.split(r"[;,]", tags)]
        c["tags"] = [t.strip() for t in tags if t and t.strip()]
        _remember(d, "tags", *c["tags"])
    c["updatedAt"] = now_iso()
    _remember(d, "sources", c["source"])

    changes = []
    for key, label in (("name", "Name"), ("phone", "Phone"), ("email", "Email"), ("source", "Source")):
        if before.get(key) != c[key]:
            changes.append(f"{label}: {before.get(key) or '-'} -> {c[key] or '-'}")
    if before.get("note") != c["note"] and c["note"]:
        changes.append("Note updated")
    if changes:
        push_event(d, c["id"], "Edited", "\n".join(changes), actor)
    return changes


def set_status(d, c, status, actor):
    """Manual move to any stage; unknown values land on the initial stage."""
    old = c.get("status") or PENDING_SCREENING
    c["status"] = normalize_status(status)
    c["updatedAt"] = now_iso()
    push_event(d, c["id"], "Status", f"Status: {old} -> {c['status']}", actor)
    return old


def update_follow(d, c, fields, actor):
    next_action = _text(fields, "nextAction")
    follow_at = _text(fields, "followAt")
    note = _text(fields, "note")
    c["follow"] = {"nextAction": next_action, "followAt": follow_at, "note": note}
    c["updatedAt"] = now_iso()
    push_event(d, c["id"], "Follow-up", f"Next: {next_action or '-'}\nDue: {follow_at or '-'}\n{note}", actor)
    return c["follow"]


def delete_candidate(d, candidate_id):
    """Remove a candidate and everything hanging off it."""
    before = len(d["candidates"])
    d["candidates"] = [c for c in d["candidates"] if c["id"] != candidate_id]
    for key in ("interviews", "interviewSchedules", "resumeFiles", "events", "offers"):
        d[key] = [x for x in d[key] if x.get("candidateId") != candidate_id]
    return len(d["candidates"]) < before


# ==================== SCHEDULES ====================

def schedule_transition(current, round_no):
    """Stage a candidate moves to when round ``round_no`` gets booked, or None."""
    if round_no == 1:
        preceding = (PENDING_SCREENING, RESUME_SCREENING)
    else:
        preceding = (round_passed(round_no - 1), awaiting_round(round_no - 1))
    return awaiting_round(round_no) if current in preceding else None


def upsert_schedule(d, c, fields, actor):
    """
    Save the schedule for one round (one per candidate and round) and move
    the candidate along.
    """
    round_no = parse_round(fields.get("round"))
    scheduled_at = _text(fields, "scheduledAt")
    interviewers = _text(fields, "interviewers")
    sync_status = _text(fields, "syncStatus") or NO_SYNC

    idx = next((i for i, x in enumerate(d["interviewSchedules"])
                if x["candidateId"] == c["id"] and x["round"] == round_no), None)
    existing = d["interviewSchedules"][idx] if idx is not None else None
    item = {
        "id": existing["id"] if existing else rid("sc"),
        "candidateId": c["id"],
        "round": round_no,
        "scheduledAt": scheduled_at,
        "interviewers": interviewers,
        "link": _text(fields, "link"),
        "location": _text(fields, "location"),
        "createdAt": existing["createdAt"] if existing else now_iso(),
        "updatedAt": now_iso(),
    }
    if existing:
        d["interviewSchedules"][idx] = item
    else:
        d["interviewSchedules"].append(item)

    push_event(d, c["id"], "Interview scheduled",
               f"Round {round_no}\nTime: {scheduled_at or '-'}\nInterviewers: {interviewers or '-'}", actor)

    old = c.get("status") or PENDING_SCREENING
    if sync_status != NO_SYNC and sync_status in STAGE_SET:
        c["status"] = sync_status
        c["updatedAt"] = now_iso()
        if old != c["status"]:
            push_event(d, c["id"], "Status sync", f"Synced from interview schedule: {old} -> {c['status']}", SYSTEM_ACTOR)
    elif sync_status == NO_SYNC and scheduled_at:
        target = schedule_transition(old, round_no)
        if target:
            c["status"] = target
            c["updatedAt"] = now_iso()
            push_event(d, c["id"], "Auto transition", f"Booked round {round_no}: {old} -> {target}", SYSTEM_ACTOR)

    if scheduled_at:
        c.setdefault("follow", {})
        c["follow"]["nextAction"] = "Awaiting feedback"
        c["follow"]["followAt"] = scheduled_at[:10]
    return item


# ==================== REVIEWS ====================

def review_transition(submitted_status, rating, round_no):
    """
    Return ``(new_status, message)`` for a review.

    Low ratings keep the submitted progress and only advise; a score at or
    above the pass threshold passes the round, and passing the final round
    goes straight to the offer stage.
    """
    if rating in LOW_RATINGS:
        return submitted_status, f"Rating {rating}: consider marking this candidate as {REJECTED}."
    if RATING_SCORES.get(rating, 0) >= PASS_THRESHOLD:
        if round_no >= FINAL_ROUND:
            return AWAITING_OFFER, f"Round {round_no} passed (rating {rating}), moved to {AWAITING_OFFER}."
        passed = round_passed(round_no)
        return passed, f"Rating {rating}, moved to {passed}."
    return submitted_status, ""


def follow_after_review(c, round_no, today=None):
    today = today or date.today()
    follow = c.setdefault("follow", {})
    status = c["status"]
    if status == REJECTED:
        follow["nextAction"] = CLOSED_ACTION
        follow["note"] = ((follow.get("note") + "\n") if follow.get("note") else "") + f"Round {round_no} rejected"
    elif "Passed" in status:
        follow["nextAction"] = "Schedule next round"
        follow["followAt"] = (today + timedelta(days=2)).isoformat()
    elif status == AWAITING_OFFER:
        follow["nextAction"] = "Prepare offer"
    return follow


def _clean_dimensions(raw):
    dims = {}
    for key in DIMENSION_KEYS:
        try:
            stars = int((raw or {}).get(key) or 0)
        except (TypeError, ValueError):
            continue
        if 1 <= stars <= 5:
            dims[key] = stars
    return dims


def submit_review(d, c, fields, actor):
    """
    Record a review (one per candidate, round and interviewer) and apply the
    rating-driven transition. Returns ``(review, message)``.
    """
    round_no = parse_round(fields.get("round"))
    status = str(fields.get("status") or awaiting_round(1))
    rating = str(fields.get("rating") or "")
    interviewer = str(fields.get("interviewer") or actor or "")
    pros = str(fields.get("pros") or "")
    cons = str(fields.get("cons") or "")
    focus_next = str(fields.get("focusNext") or "")
    note = str(fields.get("note") or "")
    if not pros and not cons and not focus_next and note:
        pros = note

    if rating and rating not in INTERVIEW_RATINGS:
        raise PipelineError("invalid_rating")
    if status not in STAGE_SET:
        raise PipelineError("invalid_status")

    dims = _clean_dimensions(fields.get("dimensions"))
    idx = next((i for i, x in enumerate(d["interviews"])
                if x["candidateId"] == c["id"] and x["round"] == round_no
                and (x.get("interviewer") or "") == interviewer), None)
    existing = d["interviews"][idx] if idx is not None else None
    review = {
        "id": existing["id"] if existing else rid("rv"),
        "candidateId": c["id"],
        "round": round_no,
        "status": status,
        "rating": rating,
        "interviewer": interviewer,
        "dimensions": dims,
        "pros": pros,
        "cons": cons,
        "focusNext": focus_next,
        "note": existing.get("note", "") if existing else "",
        "createdAt": now_iso(),
    }
    if existing:
        d["interviews"][idx] = review
    else:
        d["interviews"].append(review)

    old = c.get("status") or PENDING_SCREENING
    c["status"], message = review_transition(status, rating, round_no)
    c["updatedAt"] = now_iso()

    dim_summary = ""
    if dims:
        dim_summary = "\nDimensions: " + ", ".join(
            f"{dm['name']}={dims[dm['key']]}" for dm in REVIEW_DIMENSIONS if dm["key"] in dims)
    push_event(d, c["id"], "Review",
               f"Round {round_no} ({interviewer}): progress={status}, rating={rating or '-'}{dim_summary}"
               f"\nPros: {pros or '-'}\nCons: {cons or '-'}", actor)
    if old != c["status"]:
        push_event(d, c["id"], "Status sync", f"Updated by review: {old} -> {c['status']}", SYSTEM_ACTOR)

    follow_after_review(c, round_no)
    return review, message


def reviews_for(d, candidate_id):
    return sorted((x for x in d["interviews"] if x["candidateId"] == candidate_id),
                  key=lambda x: x["round"])


def average_score(reviews):
    scores = [RATING_SCORES[r["rating"]] for r in reviews if r.get("rating") in RATING_SCORES]
    return round(sum(scores) / len(scores), 1) if scores else None


# ==================== OFFERS ====================

def upsert_offer(d, c, fields, actor):
    """One offer per candidate. Accepting it moves the candidate to Offer Sent."""
    offer_status = _text(fields, "offerStatus") or OFFER_PENDING
    if offer_status not in OFFER_STATUSES:
        offer_status = OFFER_PENDING
    values = {
        "salary": _text(fields, "salary"),
        "salaryNote": _text(fields, "salaryNote"),
        "startDate": _text(fields, "startDate"),
        "offerStatus": offer_status,
        "note": _text(fields, "note"),
        "updatedAt": now_iso(),
    }

    offer = next((o for o in d["offers"] if o["candidateId"] == c["id"]), None)
    if offer:
        offer.update(values)
    else:
        offer = dict(values, id=rid("offer"), candidateId=c["id"], jobId=c.get("jobId") or "",
                     createdAt=values["updatedAt"])
        d["offers"].append(offer)

    push_event(d, c["id"], "Offer",
               f"Offer status: {offer_status}\nSalary: {values['salary'] or '-'}\nStart date: {values['startDate'] or '-'}",
               actor)

    if offer_status == OFFER_ACCEPTED and c.get("status") != HIRED:
        c["status"] = OFFER_SENT
        c["updatedAt"] = now_iso()
    return offer
