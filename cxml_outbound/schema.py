"""Well-formedness and DTD checks over rendered cXML text (lxml)."""

from __future__ import annotations

import logging
from pathlib import Path

from lxml import etree

from cxml_outbound.config import config
from cxml_outbound.exceptions import MalformedDocumentError, SchemaInvalidError
from cxml_outbound.telemetry import SPAN_VALIDATE, get_tracer

logger = logging.getLogger(__name__)


def _format_log(error_log) -> list[str]:
    return [f"line {entry.line}: {entry.message}" for entry in error_log]


class DtdValidator:
    """
    Pass/fail oracle for rendered documents.

    DTDs are looked up by file name under *dtd_dir* (the bundled subset by
    default) and parsed once per validator.
    """

    def __init__(self, dtd_dir: str | Path | None = None) -> None:
        self._dtd_dir = Path(dtd_dir or config.dtd_dir)
        self._dtds: dict[str, etree.DTD] = {}

    def load_dtd(self, dtd_name: str) -> etree.DTD:
        if dtd_name not in self._dtds:
            path = self._dtd_dir / dtd_name
            if not path.is_file():
                raise FileNotFoundError(f"DTD not found: {path}")
            self._dtds[dtd_name] = etree.DTD(str(path))
            logger.debug("Loaded DTD %s", path)
        return self._dtds[dtd_name]

    def parse(self, text: str) -> etree._Element:
        """Parse *text*; ``MalformedDocumentError`` lists the parser errors."""
        parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False)
        try:
            return etree.fromstring(text.encode("utf-8"), parser)
        except etree.XMLSyntaxError as exc:
            errors = _format_log(exc.error_log) or [str(exc)]
            raise MalformedDocumentError("Rendered cXML is not well-formed.", errors=errors) from exc

    def check_well_formed(self, text: str) -> None:
        self.parse(text)

    def validate(self, text: str, dtd_name: str) -> None:
        """Raise ``SchemaInvalidError`` unless *text* is valid against *dtd_name*."""
        with get_tracer().start_as_current_span(SPAN_VALIDATE, attributes={"cxml.dtd": dtd_name}) as span:
            dtd = self.load_dtd(dtd_name)
            try:
                root = self.parse(text)
            except MalformedDocumentError as exc:
                raise SchemaInvalidError(
                    f"cXML document does not match {dtd_name}: not well-formed.",
                    errors=exc.errors,
                    dtd=dtd_name,
                ) from exc

            if not dtd.validate(root):
                errors = _format_log(dtd.error_log.filter_from_errors())
                span.set_attribute("cxml.dtd_errors", len(errors))
                logger.error("cXML document does not match %s: %s", dtd_name, "; ".join(errors))
                raise SchemaInvalidError(
                    f"cXML document does not match {dtd_name}.",
                    errors=errors,
                    dtd=dtd_name,
                )
            logger.debug("cXML document matched %s", dtd_name)
