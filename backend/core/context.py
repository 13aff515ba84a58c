from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller for one request, handed to every service call."""

    user: object
    ip_address: Optional[str] = None

    @classmethod
    def from_request(cls, request) -> "RequestContext":
        forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
        ip_address = forwarded.split(",")[0].strip() if forwarded else request.META.get("REMOTE_ADDR")
        return cls(user=request.user, ip_address=ip_address or None)

    @classmethod
    def system(cls) -> "RequestContext":
        return cls(user=None)

    @property
    def user_id(self) -> Optional[int]:
        return getattr(self.user, "pk", None)

    @property
    def is_staff(self) -> bool:
        return bool(getattr(self.user, "is_staff", False))

    @property
    def is_system(self) -> bool:
        return self.user is None
