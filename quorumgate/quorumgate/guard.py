"""
Admin guard for registry mutations.

Registry operations that only the administrator may perform are wrapped
with @admin_only. The check and the guarded mutation run under the same
registry lock, so an admin transfer cannot interleave between them.
"""

import logging
from functools import wraps
from typing import Callable

from .errors import UnauthorizedError

logger = logging.getLogger(__name__)


def admin_only(func: Callable) -> Callable:
    """
    Restrict a SignatoryRegistry method to the current admin.

    The wrapped method must take the acting identity as the keyword-only
    argument ``caller``.
    """
    @wraps(func)
    def wrapper(registry, *args, caller: str, **kwargs):
        with registry.locked():
            if not registry.is_admin(caller):
                logger.warning("%s rejected: caller %r is not admin", func.__name__, caller)
                raise UnauthorizedError(
                    f"{func.__name__} requires the admin role",
                    {"caller": caller, "operation": func.__name__}
                )
            return func(registry, *args, caller=caller, **kwargs)
    return wrapper
