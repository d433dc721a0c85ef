"""
Caller context passed into every negotiation operation.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from django.utils import timezone

from .exceptions import Unauthorized


@dataclass(frozen=True)
class CallerContext:
    """
    Resolved caller and clock reading for one operation.

    Attributes:
        user: Authenticated User, or None/AnonymousUser when unresolved
        now: Timestamp every write in the operation is stamped with
    """

    user: Optional[object] = None
    now: datetime = field(default_factory=timezone.now)

    @classmethod
    def from_request(cls, request):
        """Build a context from a DRF/Django request."""
        return cls(user=getattr(request, 'user', None))

    @property
    def is_resolved(self):
        return self.user is not None and getattr(self.user, 'is_authenticated', False)

    def require_user(self):
        """
        Return the caller, or raise Unauthorized if it is unresolved.

        Raises:
            Unauthorized: If no authenticated user is attached
        """
        if not self.is_resolved:
            raise Unauthorized()
        return self.user
