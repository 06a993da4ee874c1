"""
Route handlers for the image description service.
"""

from .handlers import handle_describe, handle_health, handle_options

__all__ = [
    "handle_describe",
    "handle_health",
    "handle_options",
]
