import logging

import requests
from flask import Blueprint, flash, redirect, render_template, request, url_for

from recruit.databases import get_store
from recruit.guards import admin_required
from recruit.services.auth import AuthService
from recruit.services.feishu import FeishuError, get_feishu

logger = logging.getLogger(__name__)

settings_bp = Blueprint("settings", __name__)


@settings_bp.route("/settings")
@admin_required
def settings():
    d = get_store().load()
    return render_template("settings.html", d=d, feishu_enabled=get_feishu().enabled, active="settings")


def _add_vocabulary(key, field):
    value = (request.form.get(field) or "").strip()
    store = get_store()
    d = store.load()
    if value and value not in d[key]:
        d[key].append(value)
        store.save(d)
    return redirect(url_for("settings.settings"))


@settings_bp.route("/settings/sources", methods=["POST"])
@admin_required
def add_source():
    return _add_vocabulary("sources", "source")


@settings_bp.route("/settings/tags", methods=["POST"])
@admin_required
def add_tag():
    return _add_vocabulary("tags", "tag")


@settings_bp.route("/api/users/sync-feishu", methods=["POST"])
@admin_required
def sync_feishu_users():
    feishu = get_feishu()
    if not feishu.enabled:
        flash("Feishu is not configured", "error")
        return redirect(url_for("settings.settings"))
    try:
        employees = feishu.all_employees()
    except (FeishuError, requests.RequestException, ValueError) as e:
        logger.error("Feishu directory sync failed: %s", e)
        flash(f"Directory sync failed: {e}", "error")
        return redirect(url_for("settings.settings"))

    store = get_store()
    d = store.load()
    added, updated = AuthService.sync_directory(d, employees)
    store.save(d)
    logger.info("Feishu directory sync: %d added, %d updated", added, updated)
    flash(f"Synced {len(employees)} employees ({added} new)", "ok")
    return redirect(url_for("settings.settings"))
