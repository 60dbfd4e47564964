import calendar
from collections import Counter
from datetime import date, timedelta

from recruit.constants import (
    AWAITING_OFFER,
    CLOSED_ACTION,
    HIRED,
    INTERVIEW_ROUNDS,
    OFFER_ACCEPTED,
    OFFER_SENT,
    PENDING_SCREENING,
    PIPELINE_STAGES,
    REJECTED,
    STAGE_SET,
    awaiting_round,
    round_passed,
)
from recruit.databases import newest_first

INTERVIEW_STAGES = frozenset(s for n in INTERVIEW_ROUNDS for s in (awaiting_round(n), round_passed(n)))


def _pct(part, whole):
    return round(part * 100 / whole) if whole else 0


def status_counts(candidates):
    counts = {stage: 0 for stage in PIPELINE_STAGES}
    for c in candidates:
        stage = c.get("status") if c.get("status") in STAGE_SET else PENDING_SCREENING
        counts[stage] += 1
    return counts


def job_funnel(d, job_id):
    cands = [c for c in d["candidates"] if c.get("jobId") == job_id]
    return {
        "total": len(cands),
        "interviewing": sum(1 for c in cands if c["status"] in INTERVIEW_STAGES),
        "offer": sum(1 for c in cands if c["status"] in (AWAITING_OFFER, OFFER_SENT)),
        "hired": sum(1 for c in cands if c["status"] == HIRED),
        "rejected": sum(1 for c in cands if c["status"] == REJECTED),
    }


def _job_progress(d, job):
    hired = job_funnel(d, job["id"])["hired"]
    return {"job": job, "hired": hired, "pct": min(100, _pct(hired, job.get("headcount") or 0))}


def dashboard(d, today=None):
    """Counters, conversion rates and reminders for the overview page."""
    today = today or date.today()
    today_str = today.isoformat()
    week_end = (today + timedelta(days=7)).isoformat()

    candidates = d["candidates"]
    total = len(candidates)
    by_status = status_counts(candidates)
    hired = by_status[HIRED]
    offer_stage = by_status[OFFER_SENT]
    schedules = d["interviewSchedules"]
    by_id = {c["id"]: c for c in candidates}

    todays = sorted((s for s in schedules if (s.get("scheduledAt") or "")[:10] == today_str),
                    key=lambda s: s.get("scheduledAt") or "")
    reviewed = {(r["candidateId"], r["round"]) for r in d["interviews"]}
    pending_reviews = [
        {"schedule": s, "candidate": by_id[s["candidateId"]]}
        for s in schedules
        if (s.get("scheduledAt") or "")[:10] and s["scheduledAt"][:10] <= today_str
        and (s["candidateId"], s["round"]) not in reviewed and s["candidateId"] in by_id
    ]
    overdue = [
        c for c in candidates
        if (c.get("follow") or {}).get("followAt") and c["follow"]["followAt"] <= today_str
        and c["follow"].get("nextAction") and c["follow"]["nextAction"] != CLOSED_ACTION
    ]

    sources = Counter(c.get("source") or "Unknown" for c in candidates).most_common()
    offers = d["offers"]

    return {
        "total": total,
        "total_jobs": len(d["jobs"]),
        "open_jobs": sum(1 for j in d["jobs"] if j.get("state") == "open"),
        "by_status": by_status,
        "funnel": [{"stage": s, "count": by_status[s], "pct": _pct(by_status[s], total)} for s in PIPELINE_STAGES],
        "interviewing": sum(by_status[s] for s in INTERVIEW_STAGES),
        "offer_stage": offer_stage + by_status[AWAITING_OFFER],
        "hired": hired,
        "rejected": by_status[REJECTED],
        "today_interviews": len(todays),
        "week_interviews": sum(1 for s in schedules if today_str <= (s.get("scheduledAt") or "")[:10] <= week_end),
        "total_interviews": len(schedules),
        "offer_rate": _pct(offer_stage + hired, total),
        "hire_rate": _pct(hired, total),
        "sources": sources,
        "source_max": sources[0][1] if sources else 1,
        "total_offers": len(offers),
        "accepted_offers": sum(1 for o in offers if o.get("offerStatus") == OFFER_ACCEPTED),
        "job_progress": [_job_progress(d, j) for j in d["jobs"][:8]],
        "recent_events": newest_first(d["events"])[:8],
        "todays_schedules": [{"schedule": s, "candidate": by_id.get(s["candidateId"])} for s in todays],
        "pending_reviews": pending_reviews[:8],
        "pending_review_count": len(pending_reviews),
        "overdue": overdue[:8],
        "overdue_count": len(overdue),
    }


def parse_month(value, today=None):
    """``YYYY-MM`` to ``(year, month)``; anything else means the current month."""
    today = today or date.today()
    try:
        year, month = (int(p) for p in (value or "").split("-"))
    except ValueError:
        return today.year, today.month
    if not 1 <= month <= 12:
        return today.year, today.month
    return year, month


def month_calendar(d, year, month):
    """
    Weeks (Sunday first) of ``{"day", "date", "entries"}`` cells; padding
    cells have day 0.
    """
    by_id = {c["id"]: c for c in d["candidates"]}
    by_date = {}
    for s in d["interviewSchedules"]:
        day = (s.get("scheduledAt") or "")[:10]
        if day:
            by_date.setdefault(day, []).append(dict(s, candidate=by_id.get(s["candidateId"])))
    for items in by_date.values():
        items.sort(key=lambda s: s.get("scheduledAt") or "")

    cal = calendar.Calendar(firstweekday=calendar.SUNDAY)
    weeks = []
    for week in cal.monthdayscalendar(year, month):
        cells = []
        for day in week:
            key = f"{year:04d}-{month:02d}-{day:02d}" if day else ""
            cells.append({"day": day, "date": key, "entries": by_date.get(key, []) if day else []})
        weeks.append(cells)

    prev_month = f"{year - 1}-12" if month == 1 else f"{year}-{month - 1:02d}"
    next_month = f"{year + 1}-01" if month == 12 else f"{year}-{month + 1:02d}"
    return {"year": year, "month": month, "weeks": weeks, "prev": prev_month, "next": next_month}
