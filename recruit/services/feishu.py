"""
Feishu / Lark open platform client.

Covers the tenant access token, OAuth login, interactive card messages,
approval instances, directory listing and calendar events. One instance is
created per app and kept in ``app.extensions["feishu"]``.
"""
import json
import logging
import time
from datetime import datetime
from urllib.parse import quote

import requests
from flask import current_app

logger = logging.getLogger(__name__)

PAGE_SIZE = 50
TOKEN_EXPIRY_MARGIN = 300


class FeishuError(Exception):
    """The platform answered with a non-zero ``code``."""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


class FeishuClient:
    def __init__(self, app_id, app_secret, redirect_uri="", host="https://open.feishu.cn",
                 session=None, timeout=10):
        self.app_id = app_id or ""
        self.app_secret = app_secret or ""
        self.redirect_uri = redirect_uri or ""
        self.host = host.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self._token = ""
        self._token_expires_at = 0.0

    @classmethod
    def from_config(cls, config):
        return cls(
            app_id=config.get("FEISHU_APP_ID"),
            app_secret=config.get("FEISHU_APP_SECRET"),
            redirect_uri=config.get("FEISHU_REDIRECT_URI"),
            host=config.get("FEISHU_HOST") or "https://open.feishu.cn",
        )

    @property
    def enabled(self):
        return bool(self.app_id and self.app_secret)

    # ----- transport -----

    def _request(self, method, path, auth=True, **kwargs):
        headers = kwargs.pop("headers", {})
        if auth:
            headers["Authorization"] = f"Bearer {self.tenant_access_token()}"
        resp = self.session.request(method, self.host + path, headers=headers,
                                    timeout=self.timeout, **kwargs)
        data = resp.json()
        if data.get("code") != 0:
            raise FeishuError(f"{method} {path} failed: {data.get('msg')}", data.get("code"))
        return data

    def tenant_access_token(self):
        if self._token and time.time() < self._token_expires_at:
            return self._token
        data = self._request(
            "POST", "/open-apis/auth/v3/tenant_access_token/internal", auth=False,
            json={"app_id": self.app_id, "app_secret": self.app_secret},
        )
        self._token = data["tenant_access_token"]
        self._token_expires_at = time.time() + int(data.get("expire", 0)) - TOKEN_EXPIRY_MARGIN
        return self._token

    # ----- OAuth login -----

    def authorize_url(self, state=""):
        return (f"{self.host}/open-apis/authen/v1/authorize?app_id={self.app_id}"
                f"&redirect_uri={quote(self.redirect_uri, safe='')}&response_type=code&state={state}")

    def user_from_code(self, code):
        data = self._request("POST", "/open-apis/authen/v1/oidc/access_token",
                             json={"grant_type": "authorization_code", "code": code})["data"]
        return {
            "openId": data.get("open_id", ""),
            "unionId": data.get("union_id") or "",
            "name": data.get("name") or data.get("en_name") or "Feishu user",
            "avatar": data.get("avatar_url") or "",
        }

    # ----- messaging -----

    def send_message(self, open_id, content, title="Recruit Platform"):
        """Send a markdown card. Failures are logged and ``None`` is returned."""
        if not self.enabled or not open_id:
            return None
        card = {
            "config": {"wide_screen_mode": True},
            "header": {"title": {"tag": "plain_text", "content": title}, "template": "blue"},
            "elements": [{"tag": "markdown", "content": content}],
        }
        try:
            return self._request(
                "POST", "/open-apis/im/v1/messages", params={"receive_id_type": "open_id"},
                json={"receive_id": open_id, "msg_type": "interactive",
                      "content": json.dumps(card, ensure_ascii=False)},
            )
        except (FeishuError, requests.RequestException, ValueError) as e:
            logger.error("Feishu message to %s failed: %s", open_id, e)
            return None

    def create_approval_instance(self, approval_code, open_id, form):
        if not self.enabled or not approval_code:
            return None
        return self._request("POST", "/open-apis/approval/v4/instances", json={
            "approval_code": approval_code,
            "open_id": open_id,
            "form": json.dumps(form, ensure_ascii=False),
        })

    # ----- directory -----

    def _paged(self, path, params):
        page_token = ""
        while True:
            query = dict(params, page_size=PAGE_SIZE)
            if page_token:
                query["page_token"] = page_token
            data = self._request("GET", path, params=query).get("data") or {}
            yield from data.get("items") or []
            if not data.get("has_more"):
                break
            page_token = data.get("page_token") or ""
            if not page_token:
                break

    def list_departments(self, parent="0"):
        return [
            {
                "id": dept.get("department_id"),
                "name": dept.get("name"),
                "parentId": dept.get("parent_department_id"),
                "openDepartmentId": dept.get("open_department_id"),
            }
            for dept in self._paged("/open-apis/contact/v3/departments", {"parent_department_id": parent})
        ]

    def list_employees(self, department="0"):
        employees = []
        for u in self._paged("/open-apis/contact/v3/users", {"department_id": department}):
            avatar = u.get("avatar") or {}
            employees.append({
                "openId": u.get("open_id"),
                "unionId": u.get("union_id") or "",
                "name": u.get("name") or "",
                "enName": u.get("en_name") or "",
                "avatar": avatar.get("avatar_origin") or avatar.get("avatar_240") or "",
                "department": department,
                "jobTitle": u.get("job_title") or "",
                "mobile": u.get("mobile") or "",
                "email": u.get("email") or "",
            })
        return employees

    def all_employees(self):
        """Every employee of the root and first-level departments, once each."""
        department_ids = ["0"] + [d["id"] for d in self.list_departments("0")]
        seen = set()
        employees = []
        for department_id in department_ids:
            for u in self.list_employees(department_id):
                if u["openId"] in seen:
                    continue
                seen.add(u["openId"])
                employees.append(u)
        return employees

    # ----- calendar -----

    def primary_calendar_id(self):
        data = self._request("GET", "/open-apis/calendar/v4/calendars/primary").get("data") or {}
        calendars = data.get("calendars") or []
        if calendars and (calendars[0].get("calendar") or {}).get("calendar_id"):
            return calendars[0]["calendar"]["calendar_id"]
        return "primary"

    def create_calendar_event(self, summary, description, start, end, attendee_open_ids=()):
        """Create an event on the app's primary calendar and invite the attendees."""
        calendar_id = self.primary_calendar_id()
        data = self._request(
            "POST", f"/open-apis/calendar/v4/calendars/{calendar_id}/events",
            params={"user_id_type": "open_id"},
            json={
                "summary": summary,
                "description": description or "",
                "start_time": {"timestamp": str(int(_as_datetime(start).timestamp()))},
                "end_time": {"timestamp": str(int(_as_datetime(end).timestamp()))},
                "attendee_ability": "can_modify_event",
                "need_notification": True,
            },
        )
        event_id = ((data.get("data") or {}).get("event") or {}).get("event_id")
        if event_id and attendee_open_ids:
            self._request(
                "POST", f"/open-apis/calendar/v4/calendars/{calendar_id}/events/{event_id}/attendees",
                params={"user_id_type": "open_id"},
                json={
                    "attendees": [{"type": "user", "user_id": oid, "is_optional": False}
                                  for oid in attendee_open_ids],
                    "need_notification": True,
                },
            )
            logger.info("Calendar event %s: %d attendees added", event_id, len(attendee_open_ids))
        return data


def _as_datetime(value):
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace(" ", "T").replace("Z", "+00:00"))


def get_feishu():
    return current_app.extensions["feishu"]
