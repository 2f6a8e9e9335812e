"""Configuration management."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from .models.results import PAGE_SIZE

DEFAULT_API_URL = "http://localhost:8080"
DEFAULT_LEDGER_PATH = Path.home() / ".hotaru" / "reactions.json"


@dataclass
class ClientConfig:
    """Board client configuration from environment variables."""

    api_url: str = DEFAULT_API_URL
    ledger_path: Path = field(default_factory=lambda: DEFAULT_LEDGER_PATH)
    page_size: int = PAGE_SIZE
    request_timeout: Optional[float] = None
    admin_token: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Load configuration from environment variables.

        Reads:
        - HOTARU_API_URL (default: http://localhost:8080)
        - HOTARU_LEDGER_PATH (default: ~/.hotaru/reactions.json)
        - HOTARU_REQUEST_TIMEOUT in seconds (default: unset, no timeout)
        - HOTARU_ADMIN_TOKEN (optional privileged session token)
        """
        api_url = os.getenv("HOTARU_API_URL", DEFAULT_API_URL)

        ledger_path = os.getenv("HOTARU_LEDGER_PATH")

        timeout_str = os.getenv("HOTARU_REQUEST_TIMEOUT", "").strip()
        request_timeout = None
        if timeout_str:
            try:
                request_timeout = float(timeout_str)
            except ValueError as e:
                raise ValueError(
                    f"HOTARU_REQUEST_TIMEOUT must be a number of seconds, got {timeout_str!r}"
                ) from e

        return cls(
            api_url=api_url,
            ledger_path=Path(ledger_path).expanduser() if ledger_path else DEFAULT_LEDGER_PATH,
            request_timeout=request_timeout,
            admin_token=os.getenv("HOTARU_ADMIN_TOKEN") or None,
        )

    def validate(self) -> None:
        """Validate configuration."""
        parsed = urlparse(self.api_url)
        if parsed.scheme not in ["http", "https"] or not parsed.netloc:
            raise ValueError(
                f"HOTARU_API_URL must be an http(s) URL, got {self.api_url!r}"
            )
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError("HOTARU_REQUEST_TIMEOUT must be positive")
        if self.page_size != PAGE_SIZE:
            raise ValueError(f"Page size is fixed at {PAGE_SIZE}")
