"""Authorization policy passed to components that gate user actions."""

from dataclasses import dataclass, field
from typing import Iterable


def _normalize(values: Iterable[str]) -> frozenset[str]:
    return frozenset(v.strip().lower() for v in values if v and v.strip())


@dataclass(frozen=True)
class AccessPolicy:
    """Admin and read-only identities, plus sign-up domain restrictions.

    Identities are compared case-insensitively. An admin is never read-only
    even when listed in both sets.
    """

    admin_emails: frozenset[str] = field(default_factory=frozenset)
    readonly_emails: frozenset[str] = field(default_factory=frozenset)
    allowed_signup_domains: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_lists(
        cls,
        admin_emails: Iterable[str] = (),
        readonly_emails: Iterable[str] = (),
        allowed_signup_domains: Iterable[str] = (),
    ) -> "AccessPolicy":
        return cls(
            admin_emails=_normalize(admin_emails),
            readonly_emails=_normalize(readonly_emails),
            allowed_signup_domains=_normalize(allowed_signup_domains),
        )

    def is_admin(self, identity: str) -> bool:
        return bool(identity) and identity.strip().lower() in self.admin_emails

    def is_read_only(self, identity: str) -> bool:
        if not identity or self.is_admin(identity):
            return False
        return identity.strip().lower() in self.readonly_emails

    def can_comment(self, identity: str) -> bool:
        """Whether identity may post comments."""
        return bool(identity) and not self.is_read_only(identity)

    def can_sign_up(self, email: str) -> bool:
        """Check the sign-up domain allow list (empty list allows everyone)."""
        if not email or "@" not in email:
            return False
        if not self.allowed_signup_domains:
            return True
        domain = email.rsplit("@", 1)[1].strip().lower()
        return domain in self.allowed_signup_domains
