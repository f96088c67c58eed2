from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from payments.gateway import PaymentGateway


@dataclass
class BookingContext:
    """
    Request-scoped collaborators handed to every booking service call.

    Database access goes through the ORM connection Django already scopes to
    the request; the context carries the caller and the payment gateway.
    """

    principal: Optional[object]
    gateway: PaymentGateway = field(default_factory=PaymentGateway)

    @classmethod
    def from_request(cls, request) -> "BookingContext":
        user = getattr(request, "user", None)
        principal = user if user is not None and user.is_authenticated else None
        return cls(principal=principal)

    @property
    def principal_id(self):
        return getattr(self.principal, "pk", None)
