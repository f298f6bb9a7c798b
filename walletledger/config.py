"""Application configuration utilities for the walletledger service.

This module centralises environment-driven configuration so the rest of the
code base does not need to read environment variables directly.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load any variables defined in a local .env file. The call is idempotent, so
# importing it at module import time keeps the API ergonomic.
load_dotenv()

AUTH_MODES = ("firebase", "dev")


@dataclass(frozen=True)
class AppConfig:
    """Strongly-typed container for runtime configuration.

    Attributes:
        project_root: Root directory of the project. Used to derive default
            paths so the service works out of the box after cloning the repo.
        database_file: Absolute path to the SQLite database file holding the
            ledger.
        auth_mode: ``"firebase"`` to verify Firebase ID tokens, ``"dev"`` to
            accept locally signed HS256 tokens.
        firebase_project_id: Firebase project whose ID tokens are accepted.
            Used as the expected audience and to build the expected issuer.
        firebase_certs_url: Endpoint publishing the x509 certificates Google
            signs ID tokens with.
        dev_jwt_secret: Shared secret for dev tokens. Ignored outside dev mode.
        trusted_origins: Origins allowed by the CORS middleware.
        log_level: Log level handed to uvicorn.
        host: Interface the HTTP server binds to.
        port: Port the HTTP server binds to.
    """

    project_root: Path
    database_file: Path
    auth_mode: str
    firebase_project_id: Optional[str]
    firebase_certs_url: str
    dev_jwt_secret: str
    trusted_origins: tuple[str, ...]
    log_level: str
    host: str
    port: int

    @property
    def dev_mode(self) -> bool:
        return self.auth_mode == "dev"


def load_config() -> AppConfig:
    """Create a new :class:`AppConfig` instance based on environment settings.

    Environment variables override the default values. Unknown auth modes are
    rejected early so a typo never silently disables token verification.
    """

    project_root = Path(__file__).resolve().parent.parent
    database_file = Path(
        getenv_with_default(
            "LEDGER_DB_FILE",
            project_root / "walletledger.db",
        )
    )

    auth_mode = (getenv_with_default("LEDGER_AUTH_MODE", "firebase") or "firebase").lower()
    if auth_mode not in AUTH_MODES:
        raise ValueError(f"LEDGER_AUTH_MODE must be one of {', '.join(AUTH_MODES)}, got {auth_mode!r}")

    origins = getenv_with_default("LEDGER_TRUSTED_ORIGINS", "*") or "*"
    trusted_origins = tuple(origin.strip() for origin in origins.split(",") if origin.strip())

    # Ensure the directories exist so later code can safely create files.
    database_file.parent.mkdir(parents=True, exist_ok=True)

    return AppConfig(
        project_root=project_root,
        database_file=database_file,
        auth_mode=auth_mode,
        firebase_project_id=getenv_with_default("FIREBASE_PROJECT_ID"),
        firebase_certs_url=getenv_with_default(
            "FIREBASE_CERTS_URL",
            "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com",
        ),
        dev_jwt_secret=getenv_with_default("LEDGER_DEV_JWT_SECRET", "dev-change-me"),
        trusted_origins=trusted_origins or ("*",),
        log_level=(getenv_with_default("LEDGER_LOG_LEVEL", "info") or "info").lower(),
        host=getenv_with_default("LEDGER_HOST", "127.0.0.1"),
        port=int(getenv_with_default("LEDGER_PORT", "8000")),
    )


def getenv_with_default(name: str, default: Optional[Path | str] = None) -> Optional[str]:
    """Return the value of an environment variable or a sensible default.

    ``None`` values are propagated so callers can make explicit decisions about
    optional configuration values. Paths are converted to strings, keeping the
    return type uniform.
    """

    from os import getenv

    value = getenv(name)
    if value is not None:
        return value
    if default is None:
        return None
    return str(default)
