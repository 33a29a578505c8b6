"""
OpenTelemetry wiring for cXML submission.

Every pipeline stage opens one span under the names below; the submit span
is the parent of render, validate and post. The supplier stub continues
the sender's trace from the W3C ``traceparent`` header set on each POST.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, MutableMapping

from opentelemetry import context, trace
from opentelemetry.propagate import extract, inject, set_global_textmap
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from cxml_outbound.config import config

if TYPE_CHECKING:
    from cxml_outbound.document import CxmlDocument

logger = logging.getLogger(__name__)

SERVICE_NAME = "cxml-outbound"

SPAN_SUBMIT = "cxml.submit"
SPAN_RENDER = "cxml.render"
SPAN_VALIDATE = "cxml.validate"
SPAN_POST = "cxml.transport.post"
SPAN_RECEIVE = "supplier_stub.receive"

_tracer: trace.Tracer | None = None


def _resource(service_name: str) -> Resource:
    return Resource.create(
        {
            "service.name": service_name,
            "deployment.environment": config.deployment_mode,
            "cxml.protocol_version": config.protocol_version,
        }
    )


def init_telemetry(service_name: str = SERVICE_NAME) -> trace.Tracer:
    """Install a tracer provider for *service_name*; later calls reuse the first."""
    global _tracer
    if _tracer is not None:
        return _tracer

    provider = TracerProvider(resource=_resource(service_name))

    if config.otel_endpoint:
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
                OTLPSpanExporter,
            )
        except ImportError:
            logger.warning(
                "OTEL endpoint %s set but the otlp extra is not installed; spans go to the console",
                config.otel_endpoint,
            )
            provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        else:
            provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otel_endpoint)))
            logger.info("Exporting %s spans to %s", service_name, config.otel_endpoint)
    elif config.log_level.upper() == "DEBUG":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    set_global_textmap(CompositePropagator([TraceContextTextMapPropagator()]))

    _tracer = trace.get_tracer(service_name)
    return _tracer


def get_tracer() -> trace.Tracer:
    """The tracer from ``init_telemetry``, or the global proxy before it runs."""
    if _tracer is None:
        return trace.get_tracer(SERVICE_NAME)
    return _tracer


def document_attributes(document: CxmlDocument) -> dict[str, Any]:
    return {
        "cxml.message_type": document.message_type.value,
        "cxml.payload_id": document.payload_id,
    }


def propagate(headers: MutableMapping[str, str]) -> MutableMapping[str, str]:
    """Add the current ``traceparent`` to outgoing *headers*."""
    inject(carrier=headers)
    return headers


def incoming_context(headers: Mapping[str, str]) -> context.Context:
    """Trace context carried by an inbound request's *headers*."""
    return extract(carrier=dict(headers))
