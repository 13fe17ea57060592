"""
Identity registry - Handle allocation bound to mark ownership.

Claim rules
===========

A handle is claimed by presenting an email and a mark. The checks run in
this order, and the first failure wins:

1. email and handle are canonicalized (strip + lowercase) and validated
2. the mark must belong to a donation recorded for this exact email
3. the email domain (or a parent domain) must not be disposable
4. the handle must not be owned by an identity with a different email
5. one identity per email; under the FREEZE policy a handle, once set,
   never changes

Successful claims stamp every donation of the email as handle-bound.
Repeating a claim converges: marks and device ids are appended set-like.
"""

import logging
import re
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from email_validator import EmailNotValidError, validate_email

from .exceptions import DisposableEmail, HandleFrozen, HandleTaken, MarkNotOwned, ValidationError
from .ledger import canonical_email
from .marks import isoformat, marks_equal, redact, utc_now
from .models import Identity, RegistryDocument
from .ports import Clock, RegistryStore

logger = logging.getLogger(__name__)

HANDLE_PATTERN = re.compile(r"^[a-z0-9._-]{2,32}$")


class HandlePolicy(str, Enum):
    """
    What happens when an email with a handle claims a different one.

    FREEZE: rejected with HandleFrozen (default).
    UPGRADE: the identity moves to the new handle if it is free.
    """

    FREEZE = "freeze"
    UPGRADE = "upgrade"


def canonical_handle(handle: str | None) -> str:
    return (handle or "").strip().lower()


@dataclass
class IdentityRegistry:
    """
    Domain service for handle claims.

    Enforces mark ownership, the disposable-email gate, global handle
    uniqueness and one identity per email.
    """

    store: RegistryStore
    disposable_domains: Iterable[str] = field(default_factory=frozenset)
    handle_policy: HandlePolicy = HandlePolicy.FREEZE
    clock: Clock = utc_now

    def __post_init__(self) -> None:
        self.disposable_domains = frozenset(d.strip().lower() for d in self.disposable_domains if d.strip())

    def check_handle_available(self, handle: str) -> bool:
        """Case-insensitive check against every existing identity handle."""
        handle = canonical_handle(handle)
        return self.store.load().find_identity_by_handle(handle) is None

    def claim_handle(self, email: str, handle: str, mark: str, device_id: str | None = None) -> Identity:
        """
        Bind ``handle`` to the identity of ``email``, proven by ``mark``.

        Args:
            email: Payer email (will be normalized)
            handle: Requested handle (will be lowercased)
            mark: Mark minted for a donation from this email
            device_id: Optional client device identifier to remember

        Returns:
            The created or updated Identity

        Raises:
            ValidationError: Malformed email or handle, or empty mark
            MarkNotOwned: No donation binds this mark to this email
            DisposableEmail: Email domain is on the deny-list
            HandleTaken: Handle belongs to another email
            HandleFrozen: Email already holds a different handle
        """
        email = self._validate_email(email)
        handle = self._validate_handle(handle)
        mark = (mark or "").strip()
        if not mark:
            raise ValidationError("Mark is required")
        device_id = (device_id or "").strip()

        with self.store.transaction() as document:
            if not self._owns_mark(document, email, mark):
                logger.warning("Rejected claim of %r: mark %s not owned by %s", handle, redact(mark), email)
                raise MarkNotOwned("Mark does not belong to this email")

            if self._is_disposable(email):
                logger.warning("Rejected claim of %r: disposable email %s", handle, email)
                raise DisposableEmail("Disposable email domains cannot claim handles")

            owner = document.find_identity_by_handle(handle)
            if owner is not None and owner.email != email:
                raise HandleTaken(f"Handle {handle!r} is already taken")

            identity = document.find_identity_by_email(email)
            if identity is None:
                identity = Identity(
                    identity_id=uuid.uuid4().hex,
                    email=email,
                    handle=handle,
                    marks=[mark],
                    created_at=isoformat(self.clock()),
                    device_ids=[device_id] if device_id else [],
                )
                document.identities.append(identity)
                logger.info("Created identity %s with handle %r", identity.identity_id, handle)
            else:
                self._update(identity, handle, mark, device_id)

            self._stamp_donations(document, email, handle)
            return identity

    def _update(self, identity: Identity, handle: str, mark: str, device_id: str) -> None:
        if identity.handle and identity.handle != handle:
            if self.handle_policy is HandlePolicy.FREEZE:
                raise HandleFrozen(f"Email is already bound to handle {identity.handle!r}")
            logger.info("Identity %s moved from %r to %r", identity.identity_id, identity.handle, handle)
        elif not identity.handle:
            logger.info("Identity %s bound to handle %r", identity.identity_id, handle)

        identity.handle = handle
        if mark not in identity.marks:
            identity.marks.append(mark)
        if device_id and device_id not in identity.device_ids:
            identity.device_ids.append(device_id)

    def _owns_mark(self, document: RegistryDocument, email: str, mark: str) -> bool:
        return any(d.email == email and d.mark and marks_equal(d.mark, mark) for d in document.donations)

    def _is_disposable(self, email: str) -> bool:
        labels = email.rsplit("@", 1)[1].split(".")
        return any(".".join(labels[i:]) in self.disposable_domains for i in range(len(labels)))

    def _stamp_donations(self, document: RegistryDocument, email: str, handle: str) -> None:
        for donation in document.donations:
            if donation.email == email:
                donation.handle_bound = True
                donation.bound_handle = handle

    def _validate_email(self, email: str) -> str:
        email = canonical_email(email)
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError(f"Invalid email: {e}") from None
        return email

    def _validate_handle(self, handle: str) -> str:
        handle = canonical_handle(handle)
        if not HANDLE_PATTERN.match(handle):
            raise ValidationError("Handle must be 2-32 characters of a-z, 0-9, '.', '_' or '-'")
        return handle
