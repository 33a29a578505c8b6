"""Base contract shared by outbound cXML documents.

A document owns a private nested ``dict`` tree (``self._props``) which only
its builder operations mutate. Every accepted entity is validated first and
deep-copied on the way in, so callers keep ownership of what they pass.
"""

from __future__ import annotations

import copy
import logging
import os
import socket
import uuid
from typing import TYPE_CHECKING, Any, Callable, ClassVar

from cxml_outbound.config import CxmlConfig
from cxml_outbound.config import config as default_config
from cxml_outbound.constants import EVENTS, MessageType
from cxml_outbound.exceptions import InvalidArgumentError
from cxml_outbound.fields import (
    CREDENTIAL_RULES,
    HEADER_RULES,
    SENDER_RULES,
    check_fields,
)
from cxml_outbound.normalizer import iso_timestamp, now_timestamp

if TYPE_CHECKING:
    from cxml_outbound.response import CxmlResponse
    from cxml_outbound.submit import SubmitPipeline

logger = logging.getLogger(__name__)

Listener = Callable[[str], Any]


def generate_payload_id() -> str:
    """cXML convention: ``<timestamp>.<pid>.<random>@<host>``."""
    return f"{uuid.uuid1().time}.{os.getpid()}.{uuid.uuid4().hex[:12]}@{socket.gethostname()}"


def require_text(value: Any, name: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidArgumentError(
            f'The "{name}" argument is required and must not be blank.'
        )
    return str(value)


def require_sequence(values: Any, name: str) -> list | tuple:
    if not isinstance(values, (list, tuple)):
        raise InvalidArgumentError(
            f'The "{name}" argument is required and must be a list.'
        )
    return values


class CxmlDocument:
    """
    One outbound cXML message.

    Subclasses set ``message_type`` and ``validates_schema`` and own the
    variant-specific builder operations; this class owns the header, the
    event listeners, rendering and submission.
    """

    message_type: ClassVar[MessageType]
    validates_schema: ClassVar[bool] = False

    _props: dict[str, Any]

    def __init__(
        self,
        *,
        payload_id: str | None = None,
        timestamp: Any = None,
        language: str | None = None,
        config: CxmlConfig | None = None,
    ) -> None:
        self._config = config or default_config
        self._listeners: dict[str, list[Listener]] = {event: [] for event in EVENTS}
        self._envelope: dict[str, Any] = {
            "payload_id": str(payload_id) if payload_id else generate_payload_id(),
            "timestamp": iso_timestamp(timestamp) if timestamp else now_timestamp(),
            "version": self._config.protocol_version,
            "language": language or self._config.default_language,
            "header": None,
        }

    # ------------------------------------------------------------------
    # Envelope
    # ------------------------------------------------------------------

    @property
    def config(self) -> CxmlConfig:
        return self._config

    @property
    def payload_id(self) -> str:
        return self._envelope["payload_id"]

    @property
    def timestamp(self) -> str:
        return self._envelope["timestamp"]

    @property
    def language(self) -> str:
        return self._envelope["language"]

    @property
    def version(self) -> str:
        return self._envelope["version"]

    @property
    def has_header(self) -> bool:
        return self._envelope["header"] is not None

    @property
    def header(self) -> dict[str, Any] | None:
        """The sender block of the header (a copy), or ``None`` before ``set_header``."""
        header = self._envelope["header"]
        return copy.deepcopy(header["sender"]) if header else None

    @property
    def user_agent(self) -> str:
        header = self._envelope["header"]
        if header is None:
            return self._config.user_agent
        return header["sender"]["user_agent"]

    @property
    def buyer(self) -> dict[str, Any] | None:
        return self._party(self._buyer_key)

    @property
    def supplier(self) -> dict[str, Any] | None:
        return self._party(self._supplier_key)

    # Which header credential plays which party; orders travel buyer -> supplier.
    _buyer_key: ClassVar[str] = "from"
    _supplier_key: ClassVar[str] = "to"

    def _party(self, key: str) -> dict[str, Any] | None:
        header = self._envelope["header"]
        return copy.deepcopy(header[key]) if header else None

    def set_header(self, header: dict[str, Any]) -> CxmlDocument:
        """
        Set the ``from``, ``to`` and ``sender`` credentials.

        ``sender`` needs ``domain``, ``identity`` and ``shared_secret``;
        ``user_agent`` falls back to the configured one.
        """
        header = header or {}
        check_fields(header, HEADER_RULES, "Header")
        check_fields(header["to"], CREDENTIAL_RULES, 'Header "to"')
        check_fields(header["from"], CREDENTIAL_RULES, 'Header "from"')
        check_fields(header["sender"], SENDER_RULES, 'Header "sender"')

        sender = copy.deepcopy(header["sender"])
        sender.setdefault("user_agent", None)
        if not sender["user_agent"]:
            sender["user_agent"] = self._config.user_agent

        self._envelope["header"] = {
            "from": copy.deepcopy(header["from"]),
            "to": copy.deepcopy(header["to"]),
            "sender": sender,
        }
        logger.debug(
            "Header set on %s %s: from %s to %s",
            self.message_type.value,
            self.payload_id,
            header["from"]["identity"],
            header["to"]["identity"],
        )
        return self

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: str, listener: Listener) -> CxmlDocument:
        """Register *listener* for ``"sending"`` or ``"received"``."""
        if event not in self._listeners:
            raise InvalidArgumentError(
                f'Unknown event "{event}"; expected one of {", ".join(EVENTS)}.'
            )
        self._listeners[event].append(listener)
        return self

    def emit(self, event: str, payload: str) -> None:
        for listener in list(self._listeners.get(event, ())):
            listener(payload)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def prepare_for_render(self) -> None:
        """Hook run by the submit pipeline right before rendering."""

    def properties(self) -> dict[str, Any]:
        """
        The full property tree handed to the renderer.

        Returned by reference: the renderer reads it, callers must not mutate it.
        """
        return {**self._envelope, **self._props}

    def render(self, pretty: bool = True) -> str:
        from cxml_outbound.render import render_document

        return render_document(self, pretty=pretty)

    def to_string(self, pretty: bool = False) -> str:
        return self.render(pretty=pretty)

    def __str__(self) -> str:
        return self.to_string()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(
        self,
        url: str,
        *,
        timeout: float | None = None,
        pipeline: SubmitPipeline | None = None,
    ) -> CxmlResponse:
        """
        Render, check and POST this document to *url*.

        ``"%%TEST%%"`` as *url* returns a canned response without any
        network access.
        """
        from cxml_outbound.submit import SubmitPipeline

        pipeline = pipeline or SubmitPipeline(config=self._config)
        return await pipeline.run(self, url, timeout=timeout)
