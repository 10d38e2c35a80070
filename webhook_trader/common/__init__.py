from .async_utils import guarded_call
from .logging import log_event, sanitize_text

__all__ = [
    "guarded_call",
    "log_event",
    "sanitize_text",
]
