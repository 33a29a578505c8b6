"""HTTP transport for rendered cXML.

POSTs the payload as ``application/xml`` with the sender's user agent and
the caller's timeout. No retries: every failure surfaces as
``TransportError`` with the ``httpx`` exception chained.
"""

from __future__ import annotations

import logging

import httpx

from cxml_outbound.constants import CONTENT_TYPE
from cxml_outbound.exceptions import InvalidArgumentError, TransportError
from cxml_outbound.response import TransportReply
from cxml_outbound.telemetry import SPAN_POST, get_tracer, propagate

logger = logging.getLogger(__name__)


class HttpTransport:
    """
    Thin wrapper around ``httpx.AsyncClient``.

    Pass *client* to reuse a long-lived client, or *transport* (e.g.
    ``httpx.MockTransport``) to swap the network layer; otherwise one client
    is opened per request.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = client
        self._transport = transport

    async def post(self, url: str, body: str, *, user_agent: str, timeout: float) -> TransportReply:
        with get_tracer().start_as_current_span(
            SPAN_POST,
            attributes={"http.url": url, "http.request.body.size": len(body)},
        ) as span:
            headers = propagate({"content-type": CONTENT_TYPE, "user-agent": user_agent})

            try:
                if self._client is not None:
                    resp = await self._client.post(url, content=body, headers=headers, timeout=timeout)
                else:
                    async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                        resp = await client.post(url, content=body, headers=headers)
                resp.raise_for_status()
            except httpx.InvalidURL as exc:
                raise InvalidArgumentError(f'The "url" argument is not a valid URL: {url}') from exc
            except httpx.TimeoutException as exc:
                logger.error("cXML POST to %s timed out after %ss", url, timeout)
                raise TransportError(
                    f"Request to {url} timed out after {timeout}s", url=url
                ) from exc
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                response_body = exc.response.text
                logger.error("cXML POST to %s failed with HTTP %d", url, status_code)
                if response_body:
                    logger.error("Response body: %s", response_body)
                raise TransportError(
                    f"Request to {url} failed with HTTP {status_code}",
                    status_code=status_code,
                    response_body=response_body,
                    url=url,
                ) from exc
            except httpx.RequestError as exc:
                logger.error("cXML POST to %s failed: %s", url, exc)
                raise TransportError(f"Request to {url} failed: {exc}", url=url) from exc

            span.set_attribute("http.status_code", resp.status_code)
            logger.info("cXML POST to %s answered HTTP %d (%d bytes)", url, resp.status_code, len(resp.content))
            return TransportReply(
                status_code=resp.status_code,
                body=resp.text,
                headers=dict(resp.headers),
            )
