"""External service adapters."""

from memeforge.services._retry import NO_RETRY, RetryPolicy, call_with_retries
from memeforge.services.generation import StructuredGenerator
from memeforge.services.http import ServiceAdapter
from memeforge.services.imgflip import ImgflipClient

__all__ = [
    "NO_RETRY",
    "ImgflipClient",
    "RetryPolicy",
    "ServiceAdapter",
    "StructuredGenerator",
    "call_with_retries",
]
