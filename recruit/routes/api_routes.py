import logging
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, redirect, request, url_for

from recruit.constants import OFFER_PENDING
from recruit.databases import find_by_id, get_store, newest_first, push_event
from recruit.guards import actor_name, login_required
from recruit.services import pipeline
from recruit.services.feishu import get_feishu
from recruit.services.notifier import get_notifier
from recruit.services.storage import ResumeStorageError, get_resume_storage, latest_resume

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api/candidates")

INTERVIEW_LENGTH = timedelta(hours=1)


def _payload():
    """JSON body, or the submitted form when the client posted one."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _not_found():
    return jsonify({"error": "not_found"}), 404


def _notify(open_id, content, title):
    feishu = get_feishu()
    if feishu.enabled and open_id:
        get_notifier().submit(feishu.send_message, open_id, content, title)


@api_bp.route("/<candidate_id>", methods=["GET"])
@login_required
def get_candidate(candidate_id):
    d = get_store().load()
    c = find_by_id(d["candidates"], candidate_id)
    if not c:
        return _not_found()

    resume = get_resume_storage().refresh_url(latest_resume(d, c["id"]))
    return jsonify(dict(
        c,
        resume=resume,
        reviews=pipeline.reviews_for(d, c["id"]),
        schedules=sorted((x for x in d["interviewSchedules"] if x["candidateId"] == c["id"]),
                         key=lambda x: x["round"]),
        events=newest_first(e for e in d["events"] if e.get("candidateId") == c["id"]),
    ))


@api_bp.route("/<candidate_id>", methods=["POST"])
@login_required
def edit_candidate(candidate_id):
    store = get_store()
    d = store.load()
    c = find_by_id(d["candidates"], candidate_id)
    if not c:
        return _not_found()
    pipeline.edit_candidate(d, c, _payload(), actor_name())
    store.save(d)
    return jsonify({"ok": True})


@api_bp.route("/<candidate_id>/status", methods=["POST"])
@login_required
def change_status(candidate_id):
    store = get_store()
    d = store.load()
    c = find_by_id(d["candidates"], candidate_id)
    if not c:
        return _not_found()

    old = pipeline.set_status(d, c, _payload().get("status"), actor_name())
    store.save(d)

    _notify(g.user.get("openId"),
            f"**Candidate**: {c['name']}\n**Status**: {old} → {c['status']}\n**By**: {actor_name() or '-'}",
            "Candidate status changed")
    return jsonify({"ok": True, "status": c["status"]})


@api_bp.route("/<candidate_id>/follow", methods=["POST"])
@login_required
def update_follow(candidate_id):
    store = get_store()
    d = store.load()
    c = find_by_id(d["candidates"], candidate_id)
    if not c:
        return _not_found()
    pipeline.update_follow(d, c, _payload(), actor_name())
    store.save(d)
    return jsonify({"ok": True})


@api_bp.route("/<candidate_id>/schedule", methods=["POST"])
@login_required
def schedule_interview(candidate_id):
    store = get_store()
    d = store.load()
    c = find_by_id(d["candidates"], candidate_id)
    if not c:
        return _not_found()

    fields = _payload()
    try:
        item = pipeline.upsert_schedule(d, c, fields, actor_name())
    except pipeline.PipelineError as e:
        return str(e), 400
    store.save(d)

    feishu = get_feishu()
    if feishu.enabled and item["scheduledAt"]:
        names = pipeline.parse_interviewers(item["interviewers"])
        open_ids = pipeline.interviewer_open_ids(d, names)
        if fields.get("syncCalendar") in ("on", True, "true", "1"):
            _sync_calendar(c, item, open_ids)
        for open_id in open_ids:
            _notify(open_id,
                    f"**Candidate**: {c['name']}\n**Job**: {c.get('jobTitle') or '-'}\n"
                    f"**Round**: {item['round']}\n**Time**: {item['scheduledAt']}\n"
                    f"**Where**: {item['location'] or item['link'] or '-'}",
                    "Interview scheduled")
    return jsonify({"ok": True, "schedule": item, "status": c["status"]})


def _sync_calendar(c, item, open_ids):
    try:
        start = datetime.fromisoformat(item["scheduledAt"].replace(" ", "T"))
    except ValueError:
        logger.warning("Calendar sync skipped, unparseable time %r", item["scheduledAt"])
        return
    description = "\n".join(filter(None, [
        f"Candidate: {c['name']}",
        f"Job: {c.get('jobTitle') or '-'}",
        f"Round: {item['round']}",
        f"Link: {item['link']}" if item["link"] else "",
        f"Location: {item['location']}" if item["location"] else "",
    ]))
    get_notifier().submit(get_feishu().create_calendar_event,
                          f"Interview: {c['name']} - round {item['round']}", description,
                          start, start + INTERVIEW_LENGTH, open_ids)


@api_bp.route("/<candidate_id>/reviews", methods=["POST"])
@login_required
def submit_review(candidate_id):
    store = get_store()
    d = store.load()
    c = find_by_id(d["candidates"], candidate_id)
    if not c:
        return _not_found()

    try:
        review, message = pipeline.submit_review(d, c, _payload(), actor_name())
    except pipeline.PipelineError as e:
        return str(e), 400
    store.save(d)
    return jsonify({"ok": True, "autoFlowMsg": message, "status": c["status"], "review": review})


@api_bp.route("/<candidate_id>/resume", methods=["POST"])
@login_required
def upload_resume(candidate_id):
    store = get_store()
    d = store.load()
    c = find_by_id(d["candidates"], candidate_id)
    if not c:
        return _not_found()

    upload = request.files.get("resume")
    data = upload.read() if upload else b""
    if not data:
        return "no_file", 400
    try:
        meta = get_resume_storage().save(d, c["id"], data, upload.filename or "", upload.mimetype or "",
                                         actor_name())
    except (ResumeStorageError, OSError) as e:
        logger.error("Resume upload for %s failed: %s", candidate_id, e)
        return str(e) or "upload_error", 500
    c["updatedAt"] = meta["uploadedAt"]
    store.save(d)
    return jsonify({"ok": True, "resume": meta})


@api_bp.route("/<candidate_id>/offer", methods=["POST"])
@login_required
def save_offer(candidate_id):
    store = get_store()
    d = store.load()
    c = find_by_id(d["candidates"], candidate_id)
    if not c:
        return _not_found()

    offer = pipeline.upsert_offer(d, c, request.form.to_dict(), actor_name())
    store.save(d)

    open_id = g.user.get("openId")
    _notify(open_id,
            f"**Candidate**: {c['name']}\n**Offer status**: {offer['offerStatus']}\n"
            f"**Salary**: {offer['salary'] or '-'}\n**Start date**: {offer['startDate'] or '-'}",
            "Offer update")
    approval_code = current_app.config.get("FEISHU_APPROVAL_CODE")
    feishu = get_feishu()
    if feishu.enabled and open_id and approval_code and offer["offerStatus"] == OFFER_PENDING:
        get_notifier().submit(feishu.create_approval_instance, approval_code, open_id, [
            {"name": "Candidate", "value": c["name"]},
            {"name": "Job", "value": c.get("jobTitle") or c.get("jobId") or "-"},
            {"name": "Salary", "value": offer["salary"] or "-"},
            {"name": "Start date", "value": offer["startDate"] or "-"},
            {"name": "Note", "value": offer["note"] or "-"},
        ])
    return redirect(url_for("candidates.candidate_detail", candidate_id=c["id"]))


@api_bp.route("/<candidate_id>/notify", methods=["POST"])
@login_required
def notify(candidate_id):
    if not get_feishu().enabled:
        return "feishu_not_enabled", 400
    store = get_store()
    d = store.load()
    c = find_by_id(d["candidates"], candidate_id)
    if not c:
        return _not_found()

    message = str(_payload().get("message") or "").strip()
    if not message:
        return "empty_message", 400

    names = []
    for s in d["interviewSchedules"]:
        if s["candidateId"] == c["id"]:
            names.extend(n for n in pipeline.parse_interviewers(s.get("interviewers")) if n not in names)

    sent_to = []
    for name in names:
        for open_id in pipeline.interviewer_open_ids(d, [name]):
            _notify(open_id,
                    f"**Candidate**: {c['name']}\n**Job**: {c.get('jobTitle') or '-'}\n"
                    f"**Status**: {c.get('status') or '-'}\n\n{message}",
                    "Recruiting reminder")
            sent_to.append(name)

    _notify(g.user.get("openId"), f"You sent a notification about {c['name']}\n\n{message}", "Notification sent")

    push_event(d, c["id"], "Feishu notification",
               f"Manual notification: {message}\nRecipients: {', '.join(sent_to) if sent_to else 'no matching interviewers'}",
               actor_name())
    store.save(d)
    return jsonify({"ok": True, "sentTo": sent_to})
