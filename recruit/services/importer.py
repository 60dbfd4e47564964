import csv
import io
import logging
import re

from recruit.constants import DEFAULT_NEXT_ACTION, PENDING_SCREENING
from recruit.databases import now_iso, push_event, rid

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["name", "phone", "email", "jobId", "source", "note", "tags"]
TAG_SEPARATORS = re.compile(r"[;；]")


class CsvImportError(ValueError):
    pass


def import_candidates(d, raw, actor=None):
    """
    Create one candidate per CSV row. Rows without a name are skipped and
    reported. Returns ``(imported, errors)``.
    """
    text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise CsvImportError("The CSV file needs a header row and at least one data row")
    reader.fieldnames = [h.strip() for h in reader.fieldnames]

    jobs = {j["id"]: j for j in d["jobs"]}
    rows = imported = 0
    errors = []
    for row in reader:
        rows += 1
        row = {k: (v or "").strip() for k, v in row.items() if k}
        name = row.get("name", "")
        if not name:
            # line_num counts physical lines, so blank lines and quoted newlines keep it exact
            errors.append(f"Line {reader.line_num}: missing name")
            continue

        job_id = row.get("jobId", "")
        job = jobs.get(job_id)
        ts = now_iso()
        c = {
            "id": rid("c"),
            "name": name,
            "phone": row.get("phone", ""),
            "email": row.get("email", ""),
            "jobId": job_id,
            "jobTitle": job["title"] if job else job_id,
            "source": row.get("source", ""),
            "note": row.get("note", ""),
            "tags": [t.strip() for t in TAG_SEPARATORS.split(row.get("tags", "")) if t.strip()],
            "status": PENDING_SCREENING,
            "follow": {"nextAction": DEFAULT_NEXT_ACTION, "followAt": "", "note": ""},
            "createdAt": ts,
            "updatedAt": ts,
        }
        d["candidates"].insert(0, c)
        if c["source"] and c["source"] not in d["sources"]:
            d["sources"].append(c["source"])
        for tag in c["tags"]:
            if tag not in d["tags"]:
                d["tags"].append(tag)
        imported += 1

    if not rows:
        raise CsvImportError("The CSV file needs a header row and at least one data row")
    if imported:
        push_event(d, "", "Bulk import", f"Imported {imported} candidates", actor)
    logger.info("CSV import: %d imported, %d skipped", imported, len(errors))
    return imported, errors
