"""Runtime settings for the HTTP binding.

Values come from the environment, after loading a ``.env`` file from
the working directory if there is one.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8090
DEFAULT_PATH = "/rpc"
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True, slots=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    path: str = DEFAULT_PATH
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, dotenv_path: str | Path | None = None) -> "Settings":
        """Read ``RPC_HOST``, ``RPC_PORT``, ``RPC_PATH`` and ``LOG_LEVEL``.

        Raises ``ValueError`` if ``RPC_PORT`` is not an integer.
        """
        load_dotenv(dotenv_path or Path.cwd() / ".env")
        port = os.getenv("RPC_PORT", str(DEFAULT_PORT))
        try:
            port_num = int(port)
        except ValueError:
            raise ValueError(f"RPC_PORT must be an integer, got {port!r}") from None
        return cls(
            host=os.getenv("RPC_HOST", DEFAULT_HOST),
            port=port_num,
            path=os.getenv("RPC_PATH", DEFAULT_PATH),
            log_level=os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )
