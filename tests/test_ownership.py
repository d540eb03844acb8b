"""
Tests for the ownership guard.
"""
import uuid
from types import SimpleNamespace

import pytest

from vidora.core.errors import ErrorKind, Forbidden
from vidora.services.ownership import authorize, canonical_id, require_owner


OWNER = uuid.UUID("6f1c2a4e-9b1d-4c8e-a0f2-3d5b7e9a1c20")


@pytest.mark.parametrize("value", [
    OWNER,
    str(OWNER),
    str(OWNER).upper(),
    OWNER.hex,
    f"  {OWNER}  ",
])
def test_canonical_id_normalizes_representations(value):
    assert canonical_id(value) == str(OWNER)


@pytest.mark.parametrize("value", [None, "", "abc", 42])
def test_canonical_id_rejects_garbage(value):
    assert canonical_id(value) is None


def test_authorize_owner_in_any_form():
    resource = SimpleNamespace(id=uuid.uuid4(), owner_id=OWNER)
    assert authorize(resource, str(OWNER).upper())
    assert authorize(resource, OWNER)


def test_authorize_other_principal():
    resource = SimpleNamespace(id=uuid.uuid4(), owner_id=OWNER)
    assert not authorize(resource, uuid.uuid4())
    assert not authorize(resource, None)


def test_authorize_missing_resource():
    assert authorize(None, OWNER) is False


def test_authorize_resource_without_owner():
    assert not authorize(SimpleNamespace(id=1, owner_id=None), OWNER)


@pytest.mark.asyncio
async def test_require_owner_passes_for_owner(media):
    resource = SimpleNamespace(id=uuid.uuid4(), owner_id=OWNER)
    asset = media.put("pending.png")

    await require_owner(resource, OWNER, media, [asset.asset_id])

    assert asset.asset_id in media.live


@pytest.mark.asyncio
async def test_require_owner_discards_speculative_assets(media):
    resource = SimpleNamespace(id=uuid.uuid4(), owner_id=OWNER)
    keep = media.put("existing.mp4")
    speculative = media.put("new-thumb.png")

    with pytest.raises(Forbidden) as exc_info:
        await require_owner(resource, uuid.uuid4(), media, [speculative.asset_id, None], action="update")

    assert exc_info.value.kind == ErrorKind.FORBIDDEN
    assert exc_info.value.details == {"action": "update"}
    assert media.live == {keep.asset_id}


@pytest.mark.asyncio
async def test_require_owner_raises_even_if_discard_fails(media):
    resource = SimpleNamespace(id=uuid.uuid4(), owner_id=OWNER)
    speculative = media.put("stuck.png")
    media.fail_delete_for.add(speculative.asset_id)

    with pytest.raises(Forbidden):
        await require_owner(resource, uuid.uuid4(), media, [speculative.asset_id])
