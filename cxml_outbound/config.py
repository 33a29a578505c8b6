"""cXML outbound configuration: all values from environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BUNDLED_DTD_DIR = Path(__file__).resolve().parent / "dtds"


@dataclass(frozen=True)
class CxmlConfig:
    """Immutable configuration loaded once at import."""

    # Transport
    request_timeout: float = field(default_factory=lambda: float(os.getenv("CXML_REQUEST_TIMEOUT", "30")))
    user_agent: str = field(default_factory=lambda: os.getenv("CXML_USER_AGENT", "cxml-outbound/0.1.0"))

    # Protocol defaults
    protocol_version: str = field(default_factory=lambda: os.getenv("CXML_PROTOCOL_VERSION", "1.2.014"))
    deployment_mode: str = field(default_factory=lambda: os.getenv("CXML_DEPLOYMENT_MODE", "production"))
    default_language: str = field(default_factory=lambda: os.getenv("CXML_DEFAULT_LANGUAGE", "en"))
    dtd_dir: str = field(default_factory=lambda: os.getenv("CXML_DTD_DIR", str(BUNDLED_DTD_DIR)))

    # Observability
    otel_endpoint: str = field(default_factory=lambda: os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", ""))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


config = CxmlConfig()
