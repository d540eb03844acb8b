"""
Ownership guard shared by every mutating operation.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, Optional

from prometheus_client import Counter

from vidora.core.errors import Forbidden
from vidora.services.media.media_store import MediaStore, discard_assets

logger = logging.getLogger(__name__)

COMPENSATING_DELETES = Counter(
    "vidora_compensating_asset_deletes_total",
    "Speculatively stored assets deleted because the mutation was rejected",
)


def canonical_id(value: Any) -> Optional[str]:
    """Normalize any id representation to canonical lowercase UUID text."""
    if value is None:
        return None
    try:
        return str(uuid.UUID(str(value).strip()))
    except (TypeError, ValueError, AttributeError):
        return None


def authorize(resource: Any, principal_id: Any) -> bool:
    """True when ``resource.owner_id`` is the acting principal. None resource → False."""
    if resource is None:
        return False
    owner = canonical_id(getattr(resource, "owner_id", None))
    principal = canonical_id(principal_id)
    return owner is not None and owner == principal


async def require_owner(
    resource: Any,
    principal_id: Any,
    media_store: Optional[MediaStore] = None,
    speculative_assets: Iterable[Optional[str]] = (),
    action: str = "modify",
) -> None:
    """
    Raise Forbidden unless the principal owns ``resource``.

    Assets stored in anticipation of the mutation are deleted before the
    error leaves this function.
    """
    if authorize(resource, principal_id):
        return

    speculative_assets = [a for a in speculative_assets if a]
    if speculative_assets and media_store is not None:
        failed = await discard_assets(media_store, speculative_assets)
        COMPENSATING_DELETES.inc(len(speculative_assets) - len(failed))
        if failed:
            logger.error(f"Orphaned speculative assets after rejected {action}: {failed}")

    logger.info(
        f"Rejected {action} of {type(resource).__name__} {getattr(resource, 'id', None)} "
        f"by {principal_id}"
    )
    raise Forbidden(
        f"You are not the owner of this {type(resource).__name__.lower()}.",
        {"action": action},
    )
