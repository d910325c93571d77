import os
from typing import Optional


DEFAULT_BASE_URL = "https://www.kimi.com"


def _flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Settings:
    def __init__(self) -> None:
        self.kimi_base_url: str = os.environ.get("KIMI_BASE_URL", DEFAULT_BASE_URL)
        # Client factory for the Connect RPC backend, as "package.module:attr"
        self.rpc_client: Optional[str] = os.environ.get("KIMI_RPC_CLIENT") or None
        self.debug: bool = _flag("DEBUG_PROXY")
        # Dumps inbound headers (credentials fingerprinted) to stderr. Off unless asked for.
        self.log_inbound_headers: bool = _flag("LOG_INBOUND_HEADERS")
        try:
            self.stream_buffer_size: int = max(1, int(os.environ.get("STREAM_BUFFER_SIZE", "16")))
        except Exception:
            self.stream_buffer_size = 16


settings = Settings()
