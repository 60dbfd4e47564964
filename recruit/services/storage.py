"""
Resume files.

Uploads go to a private S3-compatible bucket and are read through presigned
URLs. When the bucket is not configured or the upload fails, the file is
written to ``UPLOAD_FOLDER`` instead and served from ``/uploads/<name>``.
"""
import logging
import os
import re
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app

from recruit.databases import now_iso, push_event, rid

logger = logging.getLogger(__name__)

SAFE_EXT = re.compile(r"^\.[a-z0-9]{1,8}$")
DEFAULT_EXT = ".pdf"
REMOTE = "remote"
LOCAL = "local"


class ResumeStorageError(Exception):
    pass


def safe_ext(filename):
    ext = os.path.splitext(filename or "")[1].lower()
    return ext if SAFE_EXT.match(ext) else DEFAULT_EXT


class ResumeStorage:
    def __init__(self, bucket="", upload_folder="uploads", ephemeral=False, expires_in=3600,
                 endpoint_url=None, region=None, client=None):
        self.bucket = bucket
        self.upload_folder = upload_folder
        self.ephemeral = ephemeral
        self.expires_in = expires_in
        self.endpoint_url = endpoint_url
        self.region = region
        self._client = client

    @classmethod
    def from_config(cls, config):
        return cls(
            bucket=config.get("RESUME_BUCKET") or "",
            upload_folder=config["UPLOAD_FOLDER"],
            ephemeral=config.get("EPHEMERAL_STORAGE", False),
            expires_in=config.get("SIGNED_URL_EXPIRES", 3600),
            endpoint_url=config.get("S3_ENDPOINT_URL"),
            region=config.get("S3_REGION"),
        )

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("s3", endpoint_url=self.endpoint_url, region_name=self.region)
        return self._client

    def signed_url(self, key):
        return self.client.generate_presigned_url(
            "get_object", Params={"Bucket": self.bucket, "Key": key}, ExpiresIn=self.expires_in)

    def _upload_remote(self, key, data, content_type):
        if not self.bucket:
            raise ResumeStorageError("bucket_disabled")
        extra = {"ContentType": content_type} if content_type else {}
        self.client.put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        return self.signed_url(key)

    def save(self, d, candidate_id, data, original_name="", content_type="", actor=None):
        """
        Store ``data`` as a resume of ``candidate_id``; append the metadata
        record and its event to ``d`` and return the record.
        """
        ext = safe_ext(original_name)
        key = f"{candidate_id}/{rid('resume')}{ext}"
        meta = {
            "id": rid("rf"),
            "candidateId": candidate_id,
            "contentType": content_type or "",
            "size": len(data),
            "uploadedAt": now_iso(),
        }

        try:
            url = self._upload_remote(key, data, content_type)
        except (ResumeStorageError, BotoCoreError, ClientError) as e:
            if self.ephemeral:
                raise ResumeStorageError(f"Resume upload failed: {e}") from e
            logger.warning("Bucket upload for %s failed, storing locally: %s", candidate_id, e)
            meta.update(self._save_local(data, ext, original_name))
            meta["fallbackReason"] = str(e) or "unknown"
            d["resumeFiles"].append(meta)
            push_event(d, candidate_id, "Resume",
                       f"Uploaded resume (local fallback): {meta['originalName']}\nReason: {meta['fallbackReason']}", actor)
            return meta

        meta.update({
            "filename": key,
            "originalName": original_name or key,
            "storage": REMOTE,
            "bucket": self.bucket,
            "url": url,
        })
        d["resumeFiles"].append(meta)
        push_event(d, candidate_id, "Resume", f"Uploaded resume: {meta['originalName']}", actor)
        return meta

    def _save_local(self, data, ext, original_name):
        name = rid("resume") + ext
        os.makedirs(self.upload_folder, exist_ok=True)
        with open(os.path.join(self.upload_folder, name), "wb") as f:
            f.write(data)
        return {
            "filename": name,
            "originalName": original_name or name,
            "storage": LOCAL,
            "bucket": "",
            "url": "/uploads/" + quote(name),
        }

    def refresh_url(self, meta):
        """Re-sign a bucket resume; local files and failures keep their URL."""
        if not meta or meta.get("storage") != REMOTE or not meta.get("filename") or not self.bucket:
            return meta
        try:
            return dict(meta, url=self.signed_url(meta["filename"]))
        except (BotoCoreError, ClientError) as e:
            logger.warning("Could not refresh resume URL %s: %s", meta["id"], e)
            return meta


def latest_resume(d, candidate_id):
    files = [r for r in d["resumeFiles"] if r.get("candidateId") == candidate_id and r.get("url")]
    return max(files, key=lambda r: r.get("uploadedAt") or "", default=None)


def get_resume_storage():
    return current_app.extensions["resume_storage"]
