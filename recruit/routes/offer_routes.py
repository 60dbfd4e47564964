from flask import Blueprint, render_template

from recruit.constants import OFFER_STATUSES
from recruit.databases import get_store
from recruit.guards import login_required

offers_bp = Blueprint("offers", __name__)


@offers_bp.route("/offers")
@login_required
def list_offers():
    d = get_store().load()
    by_id = {c["id"]: c for c in d["candidates"]}
    rows = [{"offer": o, "candidate": by_id.get(o["candidateId"])} for o in d["offers"]]
    counts = {status: 0 for status in OFFER_STATUSES}
    for o in d["offers"]:
        if o.get("offerStatus") in counts:
            counts[o["offerStatus"]] += 1
    return render_template("offers.html", rows=rows, counts=counts, total=len(rows), active="offers")
