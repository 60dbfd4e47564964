import logging
import secrets

import requests
from flask import Blueprint, g, jsonify, redirect, render_template, request, session, url_for

from recruit.databases import get_store
from recruit.guards import current_user, login_required
from recruit.services.auth import AuthService
from recruit.services.feishu import FeishuError, get_feishu

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


def _start_session(user):
    session.clear()
    session.permanent = True
    session["user"] = user


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "GET":
        if current_user():
            return redirect(url_for("candidates.list_candidates"))
        return render_template("login.html", feishu_enabled=get_feishu().enabled)

    name = (request.form.get("name") or "").strip()
    if not name:
        return redirect(url_for("auth.login"))

    store = get_store()
    d = store.load()
    user = AuthService.dev_login(d, name)
    store.save(d)
    _start_session(user)
    return redirect(url_for("candidates.list_candidates"))


@auth_bp.route("/auth/feishu")
def feishu_login():
    feishu = get_feishu()
    if not feishu.enabled:
        return redirect(url_for("auth.login"))
    state = secrets.token_urlsafe(16)
    session["oauth_state"] = state
    return redirect(feishu.authorize_url(state))


@auth_bp.route("/auth/feishu/callback")
def feishu_callback():
    code = request.args.get("code")
    expected = session.pop("oauth_state", None)
    if not code or not expected or request.args.get("state") != expected:
        return redirect(url_for("auth.login"))

    try:
        profile = get_feishu().user_from_code(code)
    except (FeishuError, requests.RequestException, ValueError, KeyError) as e:
        logger.error("Feishu OAuth failed: %s", e)
        return redirect(url_for("auth.login"))

    store = get_store()
    d = store.load()
    user = AuthService.feishu_login(d, profile)
    store.save(d)
    _start_session(user)
    return redirect(url_for("candidates.list_candidates"))


@auth_bp.route("/logout")
def logout():
    session.clear()
    return redirect(url_for("auth.login"))


@auth_bp.route("/api/auth/token", methods=["POST"])
@login_required
def issue_token():
    return jsonify({"access_token": AuthService.create_token(g.user)}), 200
