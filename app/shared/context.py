"""Request context passed explicitly into every task operation.

Carries tenant scope and caller identity. Operations never read ambient
state: the transport (or poller) builds a RequestContext and hands it in.

Usage:
    ctx = RequestContext(tenant_id="t1", user_id="u1")
    ctx = RequestContext.system("t1")  # poller / sweep, no user
"""

from dataclasses import dataclass

from app.domain.exceptions import ValidationException


@dataclass(frozen=True)
class RequestContext:
    """Immutable snapshot of who is calling, for which tenant."""

    tenant_id: str
    user_id: str | None = None
    client_ip: str | None = None
    user_agent: str | None = None
    request_id: str | None = None

    @classmethod
    def system(cls, tenant_id: str, request_id: str | None = None) -> "RequestContext":
        """Context for system actions (SLA sweep, expiry); no user identity."""
        return cls(tenant_id=tenant_id, request_id=request_id)

    def require_user(self, operation: str) -> str:
        """Return user_id or raise ValidationException when the caller is anonymous."""
        if not self.user_id:
            raise ValidationException(
                f"User ID is required to {operation} a task", field="user_id"
            )
        return self.user_id
