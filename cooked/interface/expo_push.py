"""Expo push notification sender using the Expo Push HTTP API."""

import logging
from enum import StrEnum
from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field

from cooked.core.config import constants, settings


logger = logging.getLogger(__name__)


_EXPO_TOKEN_PREFIXES = ("ExponentPushToken[", "ExpoPushToken[")


class NotificationType(StrEnum):
    """Push notification types the app knows how to route."""

    CHECK_IN_REMINDER = "check_in_reminder"
    WEEKLY_RECAP_READY = "weekly_recap_ready"


class ExpoPushMessage(BaseModel):
    """A single message in an Expo push request body."""

    to: str
    title: str | None = None
    body: str
    data: dict[str, Any] = Field(default_factory=dict)
    sound: Literal["default"] | None = "default"
    priority: Literal["default", "normal", "high"] = "high"
    channel_id: str = Field(default="default", serialization_alias="channelId")


class ExpoPushTicket(BaseModel):
    """Expo's per-message response. ``details.error`` names the failure kind."""

    status: Literal["ok", "error"]
    id: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    @property
    def error_code(self) -> str | None:
        if not self.details:
            return None
        return self.details.get("error")


def is_expo_push_token(token: str | None) -> bool:
    """Check if a push token looks like an Expo push token."""
    return isinstance(token, str) and token.startswith(_EXPO_TOKEN_PREFIXES)


def _notification_content(notification_type: NotificationType, data: dict[str, Any]) -> tuple[str, str]:
    """Return (title, body) for a notification type."""
    if notification_type == NotificationType.CHECK_IN_REMINDER:
        pact_name = data.get("pactName")
        body = (
            f'Don\'t forget to check in for "{pact_name}"'
            if pact_name
            else "You have pacts waiting for your check-in today"
        )
        return "Time to check in!", body

    if notification_type == NotificationType.WEEKLY_RECAP_READY:
        group_name = data.get("groupName")
        body = (
            f"Check out this week's highlights for {group_name}"
            if group_name
            else "Your weekly recap is ready to view"
        )
        return "Weekly Recap is ready!", body

    return "Cooked", "You have a new notification"


def create_push_message(
    push_token: str,
    notification_type: NotificationType,
    data: dict[str, Any],
) -> ExpoPushMessage:
    """Build a push message for a notification type.

    Args:
        push_token: Recipient's Expo push token
        notification_type: Which notification to send
        data: Routing payload (groupId, pactId, ...), merged into the message data

    Returns:
        Message with title and body filled in for the type
    """
    title, body = _notification_content(notification_type, data)
    return ExpoPushMessage(
        to=push_token,
        title=title,
        body=body,
        data={"type": str(notification_type), **data},
    )


def _chunk(messages: list[ExpoPushMessage], size: int) -> list[list[ExpoPushMessage]]:
    return [messages[i : i + size] for i in range(0, len(messages), size)]


def _error_tickets(count: int, message: str) -> list[ExpoPushTicket]:
    return [ExpoPushTicket(status="error", message=message) for _ in range(count)]


async def send_push_notifications(messages: list[ExpoPushMessage]) -> list[ExpoPushTicket]:
    """Send push messages to Expo in chunks.

    A chunk that fails as a whole (HTTP error, transport failure or an
    unreadable response body) yields one error ticket per message, so the
    result always lines up index-for-index with ``messages``.

    Args:
        messages: Messages to deliver

    Returns:
        One ticket per message, in input order
    """
    if not messages:
        return []

    headers = {
        "Accept": "application/json",
        "Accept-Encoding": "gzip, deflate",
        "Content-Type": "application/json",
    }
    if settings.expo_access_token:
        headers["Authorization"] = f"Bearer {settings.expo_access_token}"

    tickets: list[ExpoPushTicket] = []
    async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
        for chunk in _chunk(messages, constants.EXPO_PUSH_CHUNK_SIZE):
            payload = [m.model_dump(by_alias=True, exclude_none=True) for m in chunk]
            try:
                response = await client.post(settings.expo_push_url, json=payload, headers=headers)
            except httpx.HTTPError as e:
                logger.error("Error sending push notifications: %s", e)
                tickets.extend(_error_tickets(len(chunk), str(e) or type(e).__name__))
                continue

            if response.status_code != constants.HTTP_OK:
                logger.error("Expo Push API error: %s %s", response.status_code, response.text)
                tickets.extend(_error_tickets(len(chunk), f"HTTP {response.status_code}"))
                continue

            try:
                body = response.json()
                data = (body.get("data") if isinstance(body, dict) else None) or []
                chunk_tickets = [ExpoPushTicket.model_validate(t) for t in data]
            except (TypeError, ValueError) as e:
                logger.error("Unreadable Expo Push API response: %s", e)
                tickets.extend(_error_tickets(len(chunk), "Invalid response body"))
                continue

            if len(chunk_tickets) < len(chunk):
                # Expo returned fewer tickets than messages; keep the alignment
                chunk_tickets.extend(_error_tickets(len(chunk) - len(chunk_tickets), "No ticket returned"))
            tickets.extend(chunk_tickets[: len(chunk)])

    return tickets
