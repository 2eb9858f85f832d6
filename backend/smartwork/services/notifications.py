# backend/smartwork/services/notifications.py

import logging
from concurrent.futures import ThreadPoolExecutor

from smartwork.core.config import Settings
from smartwork.services.mailer import Mailer, build_mailer

logger = logging.getLogger(__name__)


class Notifier:
    """
    Email notices for request and account events.

    Creation and decision notices are handed to the executor and the caller
    returns immediately; a failed job is logged and never reaches the request
    that queued it. ``send_temporary_password`` is the one synchronous send.
    """

    def __init__(self, mailer: Mailer, admin_email: str, executor):
        self.mailer = mailer
        self.admin_email = admin_email
        self._executor = executor

    # ---------- detached jobs ----------

    def _submit(self, kind: str, fn, *args) -> None:
        try:
            self._executor.submit(self._run, kind, fn, *args)
        except RuntimeError:
            # executor already shut down
            logger.exception("Could not queue %s notification", kind)

    @staticmethod
    def _run(kind: str, fn, *args) -> None:
        try:
            delivered = fn(*args)
        except Exception:
            logger.exception("%s notification crashed", kind)
            return
        if not delivered:
            logger.warning("%s notification was not delivered", kind)

    def request_created(self, employee_name: str, when: str) -> None:
        self._submit("request_created", self._send_request_created, employee_name, when)

    def decision_made(self, to: str, employee_name: str, when: str, approved: bool, decided_by: str) -> None:
        self._submit("decision_made", self._send_decision, to, employee_name, when, approved, decided_by)

    def temporary_password_issued(self, to: str, username: str, temp_password: str) -> None:
        self._submit("temporary_password", self._send_temporary_password, to, username, temp_password)

    # ---------- synchronous ----------

    def send_temporary_password(self, to: str, username: str, temp_password: str) -> bool:
        try:
            return self._send_temporary_password(to, username, temp_password)
        except Exception:
            logger.exception("Temporary password email to %s crashed", to)
            return False

    # ---------- messages ----------

    def _send_request_created(self, employee_name: str, when: str) -> bool:
        body = (
            "A new smart working request has been created.\n\n"
            f"Employee: {employee_name}\n"
            f"Date: {when}\n\n"
            "Sign in to review and approve it."
        )
        return self.mailer.send(self.admin_email, "New smart working request", body)

    def _send_decision(self, to: str, employee_name: str, when: str, approved: bool, decided_by: str) -> bool:
        verdict = "approved" if approved else "rejected"
        subject = f"Request {verdict}"
        body = f"Hi {employee_name},\n\nyour smart working request for {when} was {verdict} by {decided_by}."
        return self.mailer.send(to, subject, body)

    def _send_temporary_password(self, to: str, username: str, temp_password: str) -> bool:
        body = (
            "A temporary password has been issued for your account.\n\n"
            f"Username: {username}\n"
            f"Temporary password: {temp_password}\n\n"
            "Sign in and change it as soon as possible."
        )
        return self.mailer.send(to, "SmartWork temporary password", body)

    def shutdown(self, wait: bool = True) -> None:
        shutdown = getattr(self._executor, "shutdown", None)
        if shutdown is not None:
            shutdown(wait=wait)


def build_notifier(settings: Settings) -> Notifier:
    executor = ThreadPoolExecutor(
        max_workers=max(1, settings.notification_workers),
        thread_name_prefix="notify",
    )
    return Notifier(build_mailer(settings), settings.admin_notification_email, executor)
