"""Submit pipeline: build → render → schema-check → transmit → wrap.

States::

    BUILDING → RENDERING → SCHEMA_VALIDATING → SENDING → AWAITING_RESPONSE → COMPLETED
                                             ↘ TEST_SHORTCUT → COMPLETED
    (any stage) → FAILED

The ``%%TEST%%`` destination swaps SENDING/AWAITING_RESPONSE for a canned
reply. Failures are never retried; the triggering exception propagates.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from opentelemetry import trace

from cxml_outbound.audit import (
    log_document_rendered,
    log_payload_sending,
    log_response_received,
    log_submit_completed,
    log_submit_failed,
    log_submit_started,
)
from cxml_outbound.config import CxmlConfig
from cxml_outbound.config import config as default_config
from cxml_outbound.constants import EVENT_RECEIVED, EVENT_SENDING, TEST_URL, SubmitState
from cxml_outbound.exceptions import InvalidArgumentError, MalformedDocumentError, PreconditionError
from cxml_outbound.response import CxmlResponse
from cxml_outbound.schema import DtdValidator
from cxml_outbound.telemetry import SPAN_SUBMIT, document_attributes, get_tracer
from cxml_outbound.transport import HttpTransport

if TYPE_CHECKING:
    from cxml_outbound.document import CxmlDocument

logger = logging.getLogger(__name__)


class SubmitPipeline:
    """
    Drives one document through submission.

    The renderer is the document's own ``render``; *validator* and
    *transport* are swappable for tests. One pipeline instance tracks one
    run at a time through ``state`` and ``history``.
    """

    def __init__(
        self,
        *,
        validator: DtdValidator | None = None,
        transport: HttpTransport | None = None,
        config: CxmlConfig | None = None,
    ) -> None:
        self._config = config or default_config
        self.validator = validator or DtdValidator(self._config.dtd_dir)
        self.transport = transport or HttpTransport()
        self.state = SubmitState.BUILDING
        self.history: list[SubmitState] = []

    def _enter(self, state: SubmitState, span: trace.Span) -> None:
        self.state = state
        self.history.append(state)
        span.add_event("state", {"cxml.state": state.value})
        logger.debug("Submit pipeline -> %s", state.value)

    async def run(self, document: CxmlDocument, url: str, timeout: float | None = None) -> CxmlResponse:
        self.state = SubmitState.BUILDING
        self.history = [SubmitState.BUILDING]

        with get_tracer().start_as_current_span(SPAN_SUBMIT, attributes=document_attributes(document)) as span:
            trace_id = format(span.get_span_context().trace_id, "032x")
            try:
                response = await self._run(document, url, timeout, span, trace_id)
            except Exception as exc:
                failed_in = self.state
                self._enter(SubmitState.FAILED, span)
                span.record_exception(exc)
                log_submit_failed(
                    payload_id=document.payload_id,
                    stage=failed_in.value,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                raise

            self._enter(SubmitState.COMPLETED, span)
            log_submit_completed(
                payload_id=document.payload_id,
                state=self.history[-2].value,
                is_test=response.is_test,
                is_empty=response.is_empty,
            )
            return response

    async def _run(
        self,
        document: CxmlDocument,
        url: str,
        timeout: float | None,
        span: trace.Span,
        trace_id: str,
    ) -> CxmlResponse:
        if not isinstance(url, str) or not url:
            raise InvalidArgumentError('The "url" argument is required and must be a non-empty string.')
        if not document.has_header:
            raise PreconditionError('Before submitting, "set_header" must be called with from, to and sender.')

        buyer = document.buyer or {}
        supplier = document.supplier or {}
        log_submit_started(
            payload_id=document.payload_id,
            message_type=document.message_type.value,
            url=url,
            buyer=buyer.get("identity", ""),
            supplier=supplier.get("identity", ""),
            trace_id=trace_id,
        )

        # 1. Build -> render
        document.prepare_for_render()
        self._enter(SubmitState.RENDERING, span)
        body = document.render()
        log_document_rendered(
            payload_id=document.payload_id,
            message_type=document.message_type.value,
            size_bytes=len(body.encode("utf-8")),
        )

        # 2. Well-formedness is advisory; the DTD check is fatal
        self._enter(SubmitState.SCHEMA_VALIDATING, span)
        try:
            self.validator.check_well_formed(body)
        except MalformedDocumentError as exc:
            logger.warning("cXML %s is malformed: %s", document.payload_id, "; ".join(exc.errors))
        if document.validates_schema:
            self.validator.validate(body, document.message_type.dtd_name)

        if url == TEST_URL:
            self._enter(SubmitState.TEST_SHORTCUT, span)
            return CxmlResponse.for_test(
                document.message_type,
                document.payload_id,
                version=document.version,
                language=document.language,
            )

        # 3. Notify, then transmit
        self._enter(SubmitState.SENDING, span)
        span.add_event(EVENT_SENDING, {"size_bytes": len(body)})
        log_payload_sending(payload_id=document.payload_id, url=url, size_bytes=len(body))
        document.emit(EVENT_SENDING, body)

        t0 = time.perf_counter()
        pending = self.transport.post(
            url,
            body,
            user_agent=document.user_agent,
            timeout=timeout if timeout is not None else self._config.request_timeout,
        )
        self._enter(SubmitState.AWAITING_RESPONSE, span)
        reply = await pending
        duration_ms = (time.perf_counter() - t0) * 1000.0

        span.add_event(EVENT_RECEIVED, {"size_bytes": len(reply.body)})
        log_response_received(
            payload_id=document.payload_id,
            status_code=reply.status_code,
            size_bytes=len(reply.body),
            duration_ms=duration_ms,
        )
        document.emit(EVENT_RECEIVED, reply.body)

        return CxmlResponse.from_reply(document.message_type, document.payload_id, reply)
