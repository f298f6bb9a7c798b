"""Entrypoint for running the walletledger API locally."""
from __future__ import annotations

import uvicorn

from walletledger.config import load_config


if __name__ == "__main__":
    config = load_config()
    uvicorn.run(
        "walletledger.api:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level,
        reload=config.dev_mode,
    )
