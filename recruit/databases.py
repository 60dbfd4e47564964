import json
import logging
import os
import secrets
import time
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from recruit.constants import (
    DEFAULT_NEXT_ACTION,
    DEFAULT_SOURCES,
    DEFAULT_TAGS,
    OFFER_PENDING,
    PENDING_SCREENING,
    ROLE_INTERVIEWER,
    STAGE_SET,
    SYSTEM_ACTOR,
)
from recruit.extensions import db
from recruit.models import Candidate, Event, Interview, InterviewSchedule, Job, Offer, ResumeFile, User

logger = logging.getLogger(__name__)

COLLECTIONS = ["jobs", "candidates", "interviews", "interviewSchedules", "resumeFiles", "events", "offers", "users"]


# ==================== GENERAL HELPERS ====================

def now_iso():
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def rid(prefix="id"):
    """Generate a record id: <prefix>_<epoch millis>_<16 hex chars>."""
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(8)}"


def find_by_id(items, record_id):
    return next((x for x in items if x.get("id") == record_id), None)


def push_event(d, candidate_id, type, message, actor=None):
    """Prepend an audit entry; the event log is newest first."""
    d["events"].insert(0, {
        "id": rid("ev"),
        "candidateId": candidate_id,
        "type": type,
        "message": message,
        "actor": actor or SYSTEM_ACTOR,
        "createdAt": now_iso(),
    })


def newest_first(events):
    """Events by ``createdAt`` descending; remote rows come back in table order."""
    return sorted(events, key=lambda e: e.get("createdAt") or "", reverse=True)


def normalize_candidate(c):
    if c.get("status") not in STAGE_SET:
        c["status"] = PENDING_SCREENING
    if not isinstance(c.get("follow"), dict):
        c["follow"] = {"nextAction": DEFAULT_NEXT_ACTION, "followAt": "", "note": ""}
    if not isinstance(c.get("tags"), list):
        c["tags"] = []
    return c


def ensure_data_shape(d):
    """Fill in every collection and vocabulary that is missing from ``d``."""
    if not isinstance(d, dict):
        d = {}
    for key in COLLECTIONS:
        if not isinstance(d.get(key), list):
            d[key] = []
    if not isinstance(d.get("sources"), list):
        d["sources"] = list(DEFAULT_SOURCES)
    if not isinstance(d.get("tags"), list):
        d["tags"] = list(DEFAULT_TAGS)
    for c in d["candidates"]:
        normalize_candidate(c)
    return d


def _unique(values):
    return list(dict.fromkeys(v for v in values if v))


# ==================== ROW MAPPING (camelCase <-> snake_case) ====================

def job_to_row(j):
    return {
        "id": j["id"],
        "title": j.get("title"),
        "department": j.get("department"),
        "location": j.get("location"),
        "owner": j.get("owner"),
        "headcount": j.get("headcount"),
        "level": j.get("level"),
        "state": j.get("state"),
        "category": j.get("category"),
        "jd": j.get("jd"),
        "created_at": j.get("createdAt"),
        "updated_at": j.get("updatedAt"),
    }


def job_from_row(r):
    return {
        "id": r["id"],
        "title": r.get("title") or "",
        "department": r.get("department") or "",
        "location": r.get("location") or "",
        "owner": r.get("owner") or "",
        "headcount": r.get("headcount"),
        "level": r.get("level") or "",
        "state": r.get("state") or "open",
        "category": r.get("category") or "",
        "jd": r.get("jd") or "",
        "createdAt": r.get("created_at") or now_iso(),
        "updatedAt": r.get("updated_at") or r.get("created_at") or now_iso(),
    }


def candidate_to_row(c):
    follow = c.get("follow") or {}
    return {
        "id": c["id"],
        "name": c.get("name"),
        "phone": c.get("phone"),
        "email": c.get("email"),
        "job_id": c.get("jobId"),
        "job_title": c.get("jobTitle"),
        "source": c.get("source"),
        "note": c.get("note"),
        "status": c.get("status"),
        "tags": json.dumps(c["tags"], ensure_ascii=False) if c.get("tags") else None,
        "follow_next_action": follow.get("nextAction"),
        "follow_at": follow.get("followAt"),
        "follow_note": follow.get("note"),
        "created_at": c.get("createdAt"),
        "updated_at": c.get("updatedAt"),
    }


def candidate_from_row(r):
    try:
        tags = json.loads(r["tags"]) if r.get("tags") else []
    except (TypeError, ValueError):
        tags = []
    return normalize_candidate({
        "id": r["id"],
        "name": r.get("name") or "",
        "phone": r.get("phone") or "",
        "email": r.get("email") or "",
        "jobId": r.get("job_id") or "",
        "jobTitle": r.get("job_title") or "",
        "source": r.get("source") or "",
        "note": r.get("note") or "",
        "status": r.get("status") or PENDING_SCREENING,
        "tags": tags if isinstance(tags, list) else [],
        "follow": {
            "nextAction": r.get("follow_next_action") or DEFAULT_NEXT_ACTION,
            "followAt": r.get("follow_at") or "",
            "note": r.get("follow_note") or "",
        },
        "createdAt": r.get("created_at") or now_iso(),
        "updatedAt": r.get("updated_at") or r.get("created_at") or now_iso(),
    })


def interview_to_row(x):
    return {
        "id": x["id"],
        "candidate_id": x.get("candidateId"),
        "round": x.get("round"),
        "status": x.get("status"),
        "rating": x.get("rating"),
        "interviewer": x.get("interviewer"),
        "dimensions": x.get("dimensions") or None,
        "pros": x.get("pros"),
        "cons": x.get("cons"),
        "focus_next": x.get("focusNext"),
        "note": x.get("note"),
        "created_at": x.get("createdAt"),
    }


def interview_from_row(r):
    return {
        "id": r["id"],
        "candidateId": r.get("candidate_id") or "",
        "round": r.get("round") or 1,
        "status": r.get("status") or "",
        "rating": r.get("rating") or "",
        "interviewer": r.get("interviewer") or "",
        "dimensions": r.get("dimensions") or {},
        "pros": r.get("pros") or "",
        "cons": r.get("cons") or "",
        "focusNext": r.get("focus_next") or "",
        "note": r.get("note") or "",
        "createdAt": r.get("created_at") or now_iso(),
    }


def schedule_to_row(x):
    return {
        "id": x["id"],
        "candidate_id": x.get("candidateId"),
        "round": x.get("round"),
        "scheduled_at": x.get("scheduledAt"),
        "interviewers": x.get("interviewers"),
        "link": x.get("link"),
        "location": x.get("location"),
        "created_at": x.get("createdAt"),
        "updated_at": x.get("updatedAt"),
    }


def schedule_from_row(r):
    return {
        "id": r["id"],
        "candidateId": r.get("candidate_id") or "",
        "round": r.get("round") or 1,
        "scheduledAt": r.get("scheduled_at") or "",
        "interviewers": r.get("interviewers") or "",
        "link": r.get("link") or "",
        "location": r.get("location") or "",
        "createdAt": r.get("created_at") or now_iso(),
        "updatedAt": r.get("updated_at") or r.get("created_at") or now_iso(),
    }


def resume_to_row(x):
    return {
        "id": x["id"],
        "candidate_id": x.get("candidateId"),
        "filename": x.get("filename"),
        "original_name": x.get("originalName"),
        "content_type": x.get("contentType"),
        "size": x.get("size"),
        "uploaded_at": x.get("uploadedAt"),
        "url": x.get("url"),
        "storage": x.get("storage"),
        "bucket": x.get("bucket"),
    }


def resume_from_row(r):
    return {
        "id": r["id"],
        "candidateId": r.get("candidate_id") or "",
        "filename": r.get("filename") or "",
        "originalName": r.get("original_name") or "",
        "contentType": r.get("content_type") or "",
        "size": r.get("size") or 0,
        "uploadedAt": r.get("uploaded_at") or now_iso(),
        "url": r.get("url") or "",
        "storage": r.get("storage") or "local",
        "bucket": r.get("bucket") or "",
    }


def event_to_row(e):
    return {
        "id": e["id"],
        "candidate_id": e.get("candidateId"),
        "type": e.get("type"),
        "message": e.get("message"),
        "actor": e.get("actor"),
        "created_at": e.get("createdAt"),
    }


def event_from_row(r):
    return {
        "id": r["id"],
        "candidateId": r.get("candidate_id") or "",
        "type": r.get("type") or "",
        "message": r.get("message") or "",
        "actor": r.get("actor") or SYSTEM_ACTOR,
        "createdAt": r.get("created_at") or now_iso(),
    }


def offer_to_row(o):
    return {
        "id": o["id"],
        "candidate_id": o.get("candidateId"),
        "job_id": o.get("jobId"),
        "salary": o.get("salary"),
        "salary_note": o.get("salaryNote"),
        "start_date": o.get("startDate"),
        "offer_status": o.get("offerStatus"),
        "note": o.get("note"),
        "created_at": o.get("createdAt"),
        "updated_at": o.get("updatedAt"),
    }


def offer_from_row(r):
    return {
        "id": r["id"],
        "candidateId": r.get("candidate_id") or "",
        "jobId": r.get("job_id") or "",
        "salary": r.get("salary") or "",
        "salaryNote": r.get("salary_note") or "",
        "startDate": r.get("start_date") or "",
        "offerStatus": r.get("offer_status") or OFFER_PENDING,
        "note": r.get("note") or "",
        "createdAt": r.get("created_at") or now_iso(),
        "updatedAt": r.get("updated_at") or r.get("created_at") or now_iso(),
    }


def user_to_row(u):
    return {
        "id": u["id"],
        "open_id": u.get("openId"),
        "union_id": u.get("unionId"),
        "name": u.get("name"),
        "avatar": u.get("avatar"),
        "role": u.get("role") or ROLE_INTERVIEWER,
        "department": u.get("department"),
        "job_title": u.get("jobTitle"),
        "provider": u.get("provider"),
        "created_at": u.get("createdAt"),
    }


def user_from_row(r):
    return {
        "id": r["id"],
        "openId": r.get("open_id") or "",
        "unionId": r.get("union_id") or "",
        "name": r.get("name") or "",
        "avatar": r.get("avatar") or "",
        "role": r.get("role") or ROLE_INTERVIEWER,
        "department": r.get("department") or "",
        "jobTitle": r.get("job_title") or "",
        "provider": r.get("provider") or "feishu",
        "createdAt": r.get("created_at") or now_iso(),
    }


class Table:
    """How one in-memory collection maps onto one remote table."""

    def __init__(self, key, model, to_row, from_row, minimal_keys, optional=False):
        self.key = key
        self.model = model
        self.to_row = to_row
        self.from_row = from_row
        self.minimal_keys = minimal_keys
        self.optional = optional

    @property
    def name(self):
        return self.model.__tablename__


TABLES = [
    Table("jobs", Job, job_to_row, job_from_row, ["id", "title"]),
    Table("candidates", Candidate, candidate_to_row, candidate_from_row,
          ["id", "name", "phone", "job_id", "job_title", "source"]),
    Table("interviews", Interview, interview_to_row, interview_from_row, ["id", "candidate_id", "round"]),
    Table("interviewSchedules", InterviewSchedule, schedule_to_row, schedule_from_row,
          ["id", "candidate_id", "round"]),
    Table("resumeFiles", ResumeFile, resume_to_row, resume_from_row,
          ["id", "candidate_id", "filename", "url", "original_name", "content_type",
           "size", "storage", "bucket", "uploaded_at"]),
    Table("events", Event, event_to_row, event_from_row, ["id", "candidate_id", "type"]),
    # these two tables are newer and may not exist on older remote schemas
    Table("offers", Offer, offer_to_row, offer_from_row, ["id", "candidate_id"], optional=True),
    Table("users", User, user_to_row, user_from_row, ["id", "open_id", "name", "role"], optional=True),
]

CANDIDATE_CHILD_TABLES = [Interview, InterviewSchedule, ResumeFile, Event, Offer]


def model_to_row(obj):
    return {col.name: getattr(obj, col.key) for col in obj.__table__.columns}


# ==================== RECORD STORE ====================

class RecordStore:
    """
    Whole-dataset persistence: a local JSON document, optionally mirrored to
    the remote SQL tables in ``TABLES``.

    Persistence failures are logged and never reach the caller.
    """

    def __init__(self, data_path, ephemeral=False, remote_enabled=False):
        self.data_path = data_path
        self.ephemeral = ephemeral
        self.remote_enabled = remote_enabled

    @classmethod
    def from_config(cls, config):
        return cls(
            data_path=config["DATA_PATH"],
            ephemeral=config.get("EPHEMERAL_STORAGE", False),
            remote_enabled=config.get("REMOTE_STORE_ENABLED", False),
        )

    # ----- local document -----

    def load_local(self):
        if self.ephemeral:
            return ensure_data_shape({})
        try:
            with open(self.data_path, "r", encoding="utf-8") as f:
                return ensure_data_shape(json.load(f))
        except (OSError, ValueError):
            init = ensure_data_shape({})
            try:
                self._write_local(init)
            except OSError as e:
                logger.warning("Could not initialise %s: %s", self.data_path, e)
            return init

    def save_local(self, d):
        if self.ephemeral:
            return
        self._write_local(ensure_data_shape(d))

    def _write_local(self, d):
        folder = os.path.dirname(os.path.abspath(self.data_path))
        os.makedirs(folder, exist_ok=True)
        tmp_path = self.data_path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(d, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.data_path)

    # ----- remote tables -----

    def _select_all(self, table):
        rows = db.session.execute(db.select(table.model)).scalars().all()
        return [table.from_row(model_to_row(r)) for r in rows]

    def _upsert(self, table, rows):
        if not rows:
            return
        try:
            for row in rows:
                db.session.merge(table.model(**row))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            if not table.minimal_keys:
                raise
            logger.warning("Full upsert into %s rejected, retrying with reduced columns: %s", table.name, e)
            # Core statements touch only the listed columns; merge would select them all
            t = table.model.__table__
            try:
                for row in rows:
                    values = {k: row.get(k) for k in table.minimal_keys}
                    changes = {k: v for k, v in values.items() if k != "id"}
                    result = db.session.execute(db.update(t).where(t.c.id == row["id"]).values(**changes))
                    if result.rowcount == 0:
                        db.session.execute(db.insert(t).values(**values))
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                raise

    def load(self):
        """Return the full dataset, shaped and with every candidate status valid."""
        if not self.remote_enabled:
            return self.load_local()

        try:
            d = {}
            for table in TABLES:
                try:
                    d[table.key] = self._select_all(table)
                except SQLAlchemyError:
                    db.session.rollback()
                    if not table.optional:
                        raise
                    logger.info("Remote table %s unavailable, continuing without it", table.name)
                    d[table.key] = []
            d = ensure_data_shape(d)
        except SQLAlchemyError as e:
            logger.warning("Loading from the remote store failed, falling back to local: %s", e)
            return self.load_local()

        used_sources = [c.get("source") for c in d["candidates"]]
        used_tags = [t for c in d["candidates"] for t in c.get("tags", [])]

        if self.ephemeral:
            d["sources"] = _unique(d["sources"] + used_sources)
            d["tags"] = _unique(d["tags"] + used_tags)
            return d

        local = self.load_local()
        d["sources"] = _unique(local["sources"] + used_sources)
        d["tags"] = _unique(local["tags"] + used_tags)
        merge_missing(d, local)
        return ensure_data_shape(d)

    def save(self, d):
        shaped = ensure_data_shape(d)

        try:
            self.save_local(shaped)
        except OSError as e:
            logger.warning("Saving the local copy failed: %s", e)

        if not self.remote_enabled:
            return

        # every collection commits on its own; one failure does not undo the others
        for table in TABLES:
            try:
                self._upsert(table, [table.to_row(x) for x in shaped[table.key]])
            except SQLAlchemyError as e:
                logger.warning("Saving %s to the remote store failed: %s", table.name, e)

    def delete_remote(self, model, record_id):
        if not self.remote_enabled:
            return
        try:
            db.session.execute(db.delete(model).where(model.id == record_id))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning("Remote delete %s/%s failed: %s", model.__tablename__, record_id, e)

    def delete_candidate_related(self, candidate_id):
        if not self.remote_enabled:
            return
        for model in CANDIDATE_CHILD_TABLES:
            try:
                db.session.execute(db.delete(model).where(model.candidate_id == candidate_id))
                db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.warning("Remote delete from %s for %s failed: %s", model.__tablename__, candidate_id, e)
        self.delete_remote(Candidate, candidate_id)


def merge_missing(d, local):
    """
    Add local records the remote copy lacks (by id). A local resume also wins
    when only it carries a URL.
    """
    remote_resumes = {r["id"]: i for i, r in enumerate(d["resumeFiles"])}
    for lr in local.get("resumeFiles", []):
        idx = remote_resumes.get(lr.get("id"))
        if idx is None:
            d["resumeFiles"].append(lr)
        elif lr.get("url") and not d["resumeFiles"][idx].get("url"):
            d["resumeFiles"][idx] = lr

    for key in COLLECTIONS:
        if key == "resumeFiles":
            continue
        known = {x.get("id") for x in d[key]}
        for item in local.get(key, []):
            if item.get("id") not in known:
                d[key].append(item)
    return d


def get_store():
    return current_app.extensions["record_store"]
