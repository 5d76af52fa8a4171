# =============================================================================
# dokan_core/models/session.py
# Owner session and sync policy
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Optional


@dataclass(frozen=True)
class SyncPolicy:
    """Whether records written under a session may be pushed to the backend."""
    allow_remote_sync: bool = True


@dataclass(frozen=True)
class OwnerSession:
    """
    The authenticated shopkeeper every read and write is scoped to.

    Passed explicitly into each hybrid operation; an empty owner_id means
    no user is logged in.
    """
    owner_id: Optional[str]
    policy: SyncPolicy = field(default_factory=SyncPolicy)
    display_name: Optional[str] = None
    shop_name: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.owner_id)

    @property
    def allow_remote_sync(self) -> bool:
        return self.policy.allow_remote_sync

    @classmethod
    def for_owner(
        cls,
        owner_id: Optional[str],
        demo_owner_ids: Optional[Iterable[str]] = None,
        **kwargs,
    ) -> OwnerSession:
        """
        Create a session, disabling remote sync for sandbox accounts.

        Args:
            owner_id: Authenticated owner id
            demo_owner_ids: Ids whose data must stay on the device
                (defaults to the configured demo ids)
        """
        if demo_owner_ids is None:
            from dokan_core.config import get_config
            demo_owner_ids = get_config().demo_owner_ids

        is_demo = owner_id in set(demo_owner_ids)
        return cls(owner_id=owner_id, policy=SyncPolicy(allow_remote_sync=not is_demo), **kwargs)

    @classmethod
    def anonymous(cls) -> OwnerSession:
        return cls(owner_id=None)
