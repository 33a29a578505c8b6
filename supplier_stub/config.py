"""Supplier stub configuration: all values from environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class StubConfig:
    """Immutable configuration loaded once at startup."""

    # Expected sender shared secret; empty accepts any sender.
    shared_secret: str = field(default_factory=lambda: os.getenv("STUB_SHARED_SECRET", ""))
    language: str = field(default_factory=lambda: os.getenv("STUB_LANGUAGE", "en-US"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


config = StubConfig()
