"""
options/ - Option filtering and async loading
"""

from .filtering import (
    OptionsIndex,
    filter_options_by_parent,
    format_options,
    are_options_shallow_equal,
)
from .loader import (
    AsyncOptionLoader,
    request_key,
)

__all__ = [
    "OptionsIndex",
    "filter_options_by_parent",
    "format_options",
    "are_options_shallow_equal",
    "AsyncOptionLoader",
    "request_key",
]
