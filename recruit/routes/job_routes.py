from flask import Blueprint, abort, redirect, render_template, request, url_for

from recruit.constants import JOB_CATEGORIES, JOB_STATES
from recruit.databases import find_by_id, get_store, now_iso, rid
from recruit.guards import login_required
from recruit.models import Job
from recruit.services.stats import job_funnel

jobs_bp = Blueprint("jobs", __name__, url_prefix="/jobs")


def _headcount(value):
    value = (value or "").strip()
    if not value:
        return None
    try:
        return max(0, int(value))
    except ValueError:
        return None


def _job_fields(form):
    state = (form.get("state") or "open").strip()
    category = (form.get("category") or "").strip()
    return {
        "title": (form.get("title") or "").strip(),
        "department": (form.get("department") or "").strip(),
        "location": (form.get("location") or "").strip(),
        "owner": (form.get("owner") or "").strip(),
        "headcount": _headcount(form.get("headcount")),
        "level": (form.get("level") or "").strip(),
        "category": category if category in JOB_CATEGORIES else "",
        "state": state if state in JOB_STATES else "open",
        "jd": (form.get("jd") or "").strip(),
    }


@jobs_bp.route("")
@login_required
def list_jobs():
    d = get_store().load()
    category = (request.args.get("category") or "").strip()
    jobs = [j for j in d["jobs"] if not category or j.get("category") == category]
    rows = [{"job": j, "funnel": job_funnel(d, j["id"])} for j in jobs]
    return render_template("jobs/list.html", rows=rows, category=category, active="jobs")


@jobs_bp.route("/new", methods=["GET", "POST"])
@login_required
def new_job():
    if request.method == "GET":
        return render_template("jobs/form.html", job=None, active="jobs")

    store = get_store()
    d = store.load()
    ts = now_iso()
    job = dict(_job_fields(request.form), id=rid("job"), createdAt=ts, updatedAt=ts)
    d["jobs"].insert(0, job)
    store.save(d)
    return redirect(url_for("jobs.job_detail", job_id=job["id"]))


@jobs_bp.route("/<job_id>", methods=["GET", "POST"])
@login_required
def job_detail(job_id):
    store = get_store()
    d = store.load()
    job = find_by_id(d["jobs"], job_id)
    if not job:
        abort(404)

    if request.method == "POST":
        job.update(_job_fields(request.form))
        job["updatedAt"] = now_iso()
        store.save(d)
        return redirect(url_for("jobs.job_detail", job_id=job_id))

    return render_template("jobs/form.html", job=job, funnel=job_funnel(d, job_id), active="jobs")


@jobs_bp.route("/<job_id>/delete", methods=["POST"])
@login_required
def delete_job(job_id):
    store = get_store()
    d = store.load()
    if find_by_id(d["jobs"], job_id):
        d["jobs"] = [j for j in d["jobs"] if j["id"] != job_id]
        store.delete_remote(Job, job_id)
        store.save(d)
    return redirect(url_for("jobs.list_jobs"))
