import logging
from concurrent.futures import ThreadPoolExecutor

import requests
from flask import current_app

from recruit.services.feishu import FeishuError

logger = logging.getLogger(__name__)


class Notifier:
    """
    Runs gateway calls off the request thread. Nothing is awaited or retried;
    a failed call is logged and dropped.
    """

    def __init__(self, run_async=True, max_workers=4):
        self.run_async = run_async
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify") if run_async else None

    def submit(self, fn, *args, **kwargs):
        if self._executor is None:
            self._call(fn, *args, **kwargs)
            return None
        return self._executor.submit(self._call, fn, *args, **kwargs)

    @staticmethod
    def _call(fn, *args, **kwargs):
        name = getattr(fn, "__name__", fn)
        try:
            return fn(*args, **kwargs)
        except (FeishuError, requests.RequestException) as e:
            logger.error("Notification %s failed: %s", name, e)
        except Exception:
            # nobody waits on the result, so nothing may escape
            logger.exception("Notification %s crashed", name)
        return None

    def shutdown(self):
        if self._executor is not None:
            self._executor.shutdown(wait=False)


def get_notifier():
    return current_app.extensions["notifier"]
