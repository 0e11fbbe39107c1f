"""Delivery sinks, retrying client and payload formatting."""

from .base import BaseSink, RateLimitedError, SinkError
from .client import DeliveryClient, DeliveryResult
from .file_sink import FileSink
from .formatting import LatinScriptPolicy, MessageFormatter, is_mostly_latin, truncate
from .webhook import WebhookSink, parse_retry_after

__all__ = [
    "BaseSink",
    "DeliveryClient",
    "DeliveryResult",
    "FileSink",
    "LatinScriptPolicy",
    "MessageFormatter",
    "RateLimitedError",
    "SinkError",
    "WebhookSink",
    "is_mostly_latin",
    "parse_retry_after",
    "truncate",
]
