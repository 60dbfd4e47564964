from flask import Blueprint, render_template

from recruit.databases import get_store
from recruit.guards import login_required
from recruit.services import stats

dashboard_bp = Blueprint("dashboard", __name__)


@dashboard_bp.route("/")
@login_required
def index():
    d = get_store().load()
    return render_template("dashboard.html", stats=stats.dashboard(d), active="dashboard")
