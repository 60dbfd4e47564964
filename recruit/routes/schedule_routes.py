from datetime import datetime

from flask import Blueprint, render_template, request

from recruit.databases import get_store
from recruit.guards import login_required
from recruit.services import stats

schedule_bp = Blueprint("schedule", __name__)


def _when(schedule):
    # wall-clock minutes only; any offset suffix is ignored
    try:
        return datetime.fromisoformat(schedule["scheduledAt"][:16].replace(" ", "T"))
    except ValueError:
        return None


@schedule_bp.route("/schedule")
@login_required
def schedule():
    d = get_store().load()
    view = request.args.get("view") if request.args.get("view") in ("calendar", "list") else "calendar"
    by_id = {c["id"]: c for c in d["candidates"]}
    reviews = {(r["candidateId"], r["round"]): r for r in d["interviews"]}

    rows = []
    for s in sorted((s for s in d["interviewSchedules"] if s.get("scheduledAt")),
                    key=lambda s: s["scheduledAt"]):
        rows.append({
            "schedule": s,
            "candidate": by_id.get(s["candidateId"]),
            "review": reviews.get((s["candidateId"], s["round"])),
            "when": _when(s),
        })
    now = datetime.now()
    upcoming = [r for r in rows if r["when"] is None or r["when"] >= now]
    past = [r for r in rows if r["when"] is not None and r["when"] < now]

    year, month = stats.parse_month(request.args.get("month"))
    return render_template(
        "schedule.html",
        view=view,
        upcoming=upcoming,
        past=past,
        cal=stats.month_calendar(d, year, month),
        today=now.date().isoformat(),
        active="schedule",
    )
