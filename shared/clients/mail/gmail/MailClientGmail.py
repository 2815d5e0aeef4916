import base64
from datetime import datetime
from email.message import EmailMessage

import pytz

from shared.clients.mail.MailClientInterface import MailClientInterface
from shared.errors import ProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.owner import Owner
from shared.models.workspace import MailMessage


def _decode_body_data(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8", errors="replace")


def _extract_body(payload: dict) -> str:
    """Return the plain-text body of a Gmail message payload, searching parts recursively."""
    body = payload.get("body") or {}
    if body.get("data"):
        return _decode_body_data(body["data"])
    for part in payload.get("parts") or []:
        part_body = part.get("body") or {}
        if part.get("mimeType") == "text/plain" and part_body.get("data"):
            return _decode_body_data(part_body["data"])
        if part.get("parts"):
            nested = _extract_body(part)
            if nested:
                return nested
    return ""


class MailClientGmail(MailClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://gmail.googleapis.com/gmail/v1", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Gmail"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            *super()._get_required_config(),
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://gmail.googleapis.com/gmail/v1"),
        ]

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/users/me/profile"

    ##########################################
    ################# OTHER ##################
    ##########################################

    def _parse_message(self, raw: dict) -> MailMessage:
        payload = raw.get("payload") or {}
        headers = {h.get("name", "").lower(): h.get("value", "") for h in payload.get("headers") or []}
        received_at = None
        if raw.get("internalDate"):
            received_at = datetime.fromtimestamp(int(raw["internalDate"]) / 1000, tz=pytz.utc)
        return MailMessage(
            id=raw.get("id", ""),
            thread_id=raw.get("threadId"),
            sender=headers.get("from", ""),
            recipient=headers.get("to", ""),
            subject=headers.get("subject", ""),
            body=_extract_body(payload),
            received_at=received_at,
        )

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_send_email(self, owner: Owner, to: str, subject: str, body: str) -> str:
        message = EmailMessage()
        if owner.email:
            message["From"] = owner.email
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        raw = base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")

        response = await self.do_request(
            method="POST",
            endpoint="/users/me/messages/send",
            json={"raw": raw},
            raise_on_error=True,
        )
        message_id = response.json().get("id", "")
        self.logging.info("Sent email to %s with subject '%s' (id %s).", to, subject, message_id)
        return message_id

    async def do_fetch_recent_messages(self, owner: Owner, limit: int = 100) -> list[MailMessage]:
        response = await self.do_request(
            method="GET",
            endpoint="/users/me/messages",
            params={"maxResults": limit},
            raise_on_error=True,
        )
        refs = response.json().get("messages") or []

        messages: list[MailMessage] = []
        for ref in refs:
            message_id = ref.get("id", "")
            try:
                detail = await self.do_request(
                    method="GET",
                    endpoint=f"/users/me/messages/{message_id}",
                    params={"format": "full"},
                )
                if not detail.is_success:
                    self.logging.warning("Skipping message %s: status %d.", message_id, detail.status_code)
                    continue
                messages.append(self._parse_message(detail.json()))
            except (ProviderError, ValueError, KeyError, TypeError) as e:
                # JSONDecodeError and binascii.Error are ValueErrors
                self.logging.warning("Skipping message %s: %s", message_id, e)
        return messages
