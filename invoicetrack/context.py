from dataclasses import dataclass

ADMIN_ROLE = 'admin'
USER_ROLE = 'user'


@dataclass(frozen=True)
class Actor:
    """
    The authenticated caller of an InvoiceTrack operation.

    Supplied by whatever authenticated the request (HTTP middleware, the CLI).
    The core trusts it and never looks the role up again.

    Attributes:
        id: User id of the caller
        role: 'user' or 'admin'
    """
    id: str
    role: str = USER_ROLE

    @property
    def is_admin(self) -> bool:
        """Check if the caller holds the admin role."""
        return self.role == ADMIN_ROLE
