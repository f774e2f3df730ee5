from .logging_config import setup_logging
from .tracing import new_id, now_iso

__all__ = ["new_id", "now_iso", "setup_logging"]
