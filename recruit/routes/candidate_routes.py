import logging

from flask import Blueprint, abort, current_app, g, redirect, render_template, request, send_from_directory, url_for

from recruit.constants import PIPELINE_STAGES, SYSTEM_ACTOR
from recruit.databases import find_by_id, get_store, newest_first, push_event
from recruit.guards import actor_name, login_required
from recruit.services import pipeline
from recruit.services.importer import CsvImportError, import_candidates
from recruit.services.storage import ResumeStorageError, get_resume_storage, latest_resume

logger = logging.getLogger(__name__)

candidates_bp = Blueprint("candidates", __name__)


def _filters():
    return {
        "q": (request.args.get("q") or "").strip(),
        "jobId": (request.args.get("jobId") or "").strip(),
        "source": (request.args.get("source") or "").strip(),
        "status": (request.args.get("status") or "").strip(),
    }


def filter_candidates(d, q="", jobId="", source="", status=""):
    jobs = {j["id"]: j for j in d["jobs"]}
    needle = q.lower()
    result = []
    for c in d["candidates"]:
        if not c.get("jobTitle") and c.get("jobId") in jobs:
            c["jobTitle"] = jobs[c["jobId"]]["title"]
        if jobId and c.get("jobId") != jobId:
            continue
        if source and (c.get("source") or "") != source:
            continue
        if status and c.get("status") != status:
            continue
        if needle:
            hay = " ".join([c.get("name", ""), c.get("phone", ""), c.get("email", ""), c.get("note", ""),
                            c.get("source", "")] + c.get("tags", []))
            if needle not in hay.lower():
                continue
        result.append(c)
    return result


@candidates_bp.route("/candidates")
@login_required
def list_candidates():
    d = get_store().load()
    filters = _filters()
    candidates = filter_candidates(d, **filters)
    return render_template("candidates/list.html", d=d, candidates=candidates, filters=filters,
                           active="candidates")


@candidates_bp.route("/candidates/board")
@login_required
def board():
    d = get_store().load()
    filters = dict(_filters(), status="")
    candidates = filter_candidates(d, **filters)
    columns = [{"stage": s, "cards": [c for c in candidates if c["status"] == s]} for s in PIPELINE_STAGES]
    return render_template("candidates/board.html", d=d, columns=columns, filters=filters, active="board")


@candidates_bp.route("/candidates/new", methods=["GET", "POST"])
@login_required
def new_candidate():
    store = get_store()
    d = store.load()
    if request.method == "GET":
        return render_template("candidates/new.html", d=d, active="candidates")

    fields = request.form.to_dict()
    fields["tags"] = request.form.getlist("tags")
    try:
        c = pipeline.create_candidate(d, fields, actor_name())
    except pipeline.PipelineError:
        return redirect(url_for("candidates.new_candidate"))

    upload = request.files.get("resume")
    data = upload.read() if upload else b""
    if data:
        try:
            get_resume_storage().save(d, c["id"], data, upload.filename or "", upload.mimetype or "", actor_name())
        except (ResumeStorageError, OSError) as e:
            logger.warning("Resume upload for new candidate %s skipped: %s", c["id"], e)
            push_event(d, c["id"], "Resume", f"Resume upload failed (skipped): {e}", SYSTEM_ACTOR)

    store.save(d)
    return redirect(url_for("candidates.candidate_detail", candidate_id=c["id"]))


@candidates_bp.route("/candidates/import", methods=["GET", "POST"])
@login_required
def import_csv():
    if request.method == "GET":
        return render_template("candidates/import.html", active="candidates")

    upload = request.files.get("csv")
    raw = upload.read() if upload else b""
    if not raw:
        return render_template("candidates/import_result.html", error="No file selected", active="candidates")

    store = get_store()
    d = store.load()
    try:
        imported, errors = import_candidates(d, raw, actor_name())
    except (CsvImportError, UnicodeDecodeError) as e:
        return render_template("candidates/import_result.html", error=str(e), active="candidates")
    if imported:
        store.save(d)
    return render_template("candidates/import_result.html", imported=imported, errors=errors,
                           active="candidates")


@candidates_bp.route("/candidates/<candidate_id>")
@login_required
def candidate_detail(candidate_id):
    d = get_store().load()
    c = find_by_id(d["candidates"], candidate_id)
    if not c:
        abort(404)

    reviews = sorted((x for x in d["interviews"] if x["candidateId"] == c["id"]),
                     key=lambda x: (x["round"], x.get("createdAt") or ""))
    by_round = {}
    for rv in reviews:
        by_round.setdefault(rv["round"], []).append(rv)

    return render_template(
        "candidates/detail.html",
        d=d,
        c=c,
        job=find_by_id(d["jobs"], c.get("jobId")),
        resume=get_resume_storage().refresh_url(latest_resume(d, c["id"])),
        reviews=reviews,
        reviews_by_round=by_round,
        average=pipeline.average_score(reviews),
        schedules=sorted((x for x in d["interviewSchedules"] if x["candidateId"] == c["id"]),
                         key=lambda x: x["round"]),
        events=newest_first(e for e in d["events"] if e.get("candidateId") == c["id"]),
        offer=next((o for o in d["offers"] if o["candidateId"] == c["id"]), None),
        active="candidates",
    )


@candidates_bp.route("/candidates/<candidate_id>/delete", methods=["POST"])
@login_required
def delete_candidate(candidate_id):
    store = get_store()
    d = store.load()
    if pipeline.delete_candidate(d, candidate_id):
        store.delete_candidate_related(candidate_id)
        store.save(d)
        logger.info("Candidate %s deleted by %s", candidate_id, g.user.get("name"))
    return redirect(url_for("candidates.list_candidates"))


@candidates_bp.route("/uploads/<path:name>")
@login_required
def uploaded_file(name):
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], name)
