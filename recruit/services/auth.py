# recruit/services/auth.py
import logging
from datetime import timedelta

from flask import current_app
from flask_jwt_extended import create_access_token

from recruit.constants import ROLE_ADMIN, ROLE_INTERVIEWER
from recruit.databases import now_iso, rid

logger = logging.getLogger(__name__)

SESSION_KEYS = ("id", "name", "avatar", "openId", "unionId", "provider", "role")


class AuthService:
    @staticmethod
    def resolve_role(user):
        """Admin when the user's name or open id is in ADMIN_USERS."""
        admins = current_app.config.get("ADMIN_USERS") or []
        if user.get("name") in admins or (user.get("openId") and user["openId"] in admins):
            return ROLE_ADMIN
        return ROLE_INTERVIEWER

    @staticmethod
    def session_user(user):
        return {key: user.get(key, "") for key in SESSION_KEYS}

    @staticmethod
    def dev_login(d, name):
        """
        Name-only login. Reuses the dev user with that name or registers one.
        Returns the session payload.
        """
        user = next((u for u in d["users"] if u.get("name") == name and u.get("provider") == "dev"), None)
        if not user:
            user = {
                "id": rid("usr"), "openId": "", "unionId": "", "name": name, "avatar": "",
                "department": "", "jobTitle": "", "provider": "dev", "createdAt": now_iso(),
            }
            d["users"].append(user)
        user["role"] = AuthService.resolve_role(user)
        logger.info("Dev login: %s (%s)", name, user["role"])
        return AuthService.session_user(user)

    @staticmethod
    def feishu_login(d, profile):
        """Register or refresh the user behind a Feishu OAuth profile."""
        user = next((u for u in d["users"] if u.get("openId") == profile["openId"]), None)
        if user:
            user["name"] = profile["name"]
            user["avatar"] = profile["avatar"]
        else:
            user = {
                "id": rid("usr"), "openId": profile["openId"], "unionId": profile.get("unionId", ""),
                "name": profile["name"], "avatar": profile["avatar"],
                "department": "", "jobTitle": "", "provider": "feishu", "createdAt": now_iso(),
            }
            d["users"].append(user)
        user["role"] = AuthService.resolve_role(user)
        logger.info("Feishu login: %s (%s)", user["name"], user["role"])
        return AuthService.session_user(user)

    @staticmethod
    def sync_directory(d, employees):
        """Merge directory employees into users by open id. Returns (added, updated)."""
        added = updated = 0
        for emp in employees:
            if not emp.get("openId"):
                continue
            user = next((u for u in d["users"] if u.get("openId") == emp["openId"]), None)
            if user:
                user["name"] = emp.get("name") or user.get("name", "")
                user["avatar"] = emp.get("avatar") or user.get("avatar", "")
                user["department"] = emp.get("department") or user.get("department", "")
                user["jobTitle"] = emp.get("jobTitle") or user.get("jobTitle", "")
                updated += 1
            else:
                user = {
                    "id": rid("usr"), "openId": emp["openId"], "unionId": emp.get("unionId", ""),
                    "name": emp.get("name", ""), "avatar": emp.get("avatar", ""),
                    "department": emp.get("department", ""), "jobTitle": emp.get("jobTitle", ""),
                    "provider": "feishu", "createdAt": now_iso(),
                }
                d["users"].append(user)
                added += 1
            user["role"] = AuthService.resolve_role(user)
        return added, updated

    @staticmethod
    def create_token(user):
        """Bearer token carrying the same identity as the cookie session."""
        return create_access_token(
            identity=str(user["id"]),
            additional_claims={
                "name": user.get("name", ""),
                "role": user.get("role") or ROLE_INTERVIEWER,
                "openId": user.get("openId", ""),
                "provider": user.get("provider", ""),
            },
            expires_delta=timedelta(hours=3),
        )
