"""Pydantic models for submit results: the response wrapper contract."""

from __future__ import annotations

from pydantic import BaseModel, Field

from cxml_outbound.constants import (
    DTD_BASE_URL,
    EMPTY_BODY,
    TEST_RESPONSE_TEMPLATE,
    MessageType,
)
from cxml_outbound.normalizer import now_timestamp


class TransportReply(BaseModel):
    """Raw outcome of one successful HTTP exchange."""

    status_code: int
    body: str = ""
    headers: dict[str, str] = Field(default_factory=dict)


class CxmlResponse(BaseModel):
    message_type: MessageType
    payload_id: str
    body: str
    status_code: int | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    is_test: bool = False

    @property
    def is_empty(self) -> bool:
        return self.body == EMPTY_BODY

    @classmethod
    def from_reply(
        cls, message_type: MessageType, payload_id: str, reply: TransportReply
    ) -> CxmlResponse:
        return cls(
            message_type=message_type,
            payload_id=payload_id,
            body=reply.body if reply.body else EMPTY_BODY,
            status_code=reply.status_code,
            headers=reply.headers,
        )

    @classmethod
    def for_test(
        cls,
        message_type: MessageType,
        payload_id: str,
        version: str,
        language: str,
    ) -> CxmlResponse:
        """Canned ``200 OK`` reply built locally, no network involved."""
        body = TEST_RESPONSE_TEMPLATE.format(
            dtd_base=DTD_BASE_URL,
            version=version,
            payload_id=f"{payload_id}.response",
            timestamp=now_timestamp(),
            language=language,
        )
        return cls(
            message_type=message_type,
            payload_id=payload_id,
            body=body,
            is_test=True,
        )
