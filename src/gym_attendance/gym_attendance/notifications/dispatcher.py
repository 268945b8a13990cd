from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import requests

from ..core.constants import DEFAULT_NOTIFY_TIMEOUT_SECONDS
from ..core.exceptions import NotificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Contact:
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class CredentialPayload:
    member_name: str
    username: str
    password: str
    gym_name: str


@dataclass
class NotificationReport:
    """What happened per channel. Failures carry a message for the operator."""

    sent: List[str] = field(default_factory=list)
    failed: dict = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class NotificationChannel(Protocol):
    name: str

    def send_credentials(self, recipient: str, payload: CredentialPayload) -> None:
        raise NotImplementedError


class HttpFunctionChannel:
    """POSTs credentials to a serverless send function (email or SMS).

    The function owns delivery; this only reports whether it accepted the job.
    """

    def __init__(
        self,
        name: str,
        url: str,
        *,
        recipient_field: str,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_NOTIFY_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.name = name
        self._url = url
        self._recipient_field = recipient_field
        self._api_key = api_key
        self._timeout = timeout
        self._session = session or requests.Session()

    def send_credentials(self, recipient: str, payload: CredentialPayload) -> None:
        body = {
            self._recipient_field: recipient,
            "memberName": payload.member_name,
            "username": payload.username,
            "password": payload.password,
            "gymName": payload.gym_name,
        }
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            resp = self._session.post(self._url, json=body, headers=headers, timeout=self._timeout)
        except requests.RequestException as exc:
            raise NotificationError(f"{self.name} request error: {exc}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {"text": resp.text}

        if not (200 <= resp.status_code < 300) or data.get("success") is False:
            message = data.get("error") or data.get("message") or data.get("text") or "no details"
            raise NotificationError(f"{self.name} failed ({resp.status_code}): {message}")


class CredentialNotifier:
    """Fire-and-forget delivery of login credentials to a new member.

    Never raises: each channel failure is logged and reported so an operator
    can hand the credentials over manually.
    """

    def __init__(self, *, email: Optional[NotificationChannel] = None, sms: Optional[NotificationChannel] = None):
        self._email = email
        self._sms = sms

    def notify_credentials(self, contact: Contact, payload: CredentialPayload) -> NotificationReport:
        report = NotificationReport()
        for channel, recipient in ((self._email, contact.email), (self._sms, contact.phone)):
            if channel is None or not recipient:
                if channel is not None:
                    report.skipped.append(channel.name)
                continue
            try:
                channel.send_credentials(recipient, payload)
            except NotificationError as exc:
                logger.warning("credential %s to %s failed: %s", channel.name, recipient, exc)
                report.failed[channel.name] = str(exc)
            except Exception as exc:
                logger.exception("unexpected error sending credential %s to %s", channel.name, recipient)
                report.failed[channel.name] = f"unexpected error: {exc}"
            else:
                logger.info("credential %s sent to %s", channel.name, recipient)
                report.sent.append(channel.name)
        return report
