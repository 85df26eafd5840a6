import asyncio
import re

import pytest

from inventory.core.errors import ConflictError, NotFoundError, StorageError
from inventory.services import store as store_module
from inventory.services.store import CatalogStore, generate_product_code

CODE_PATTERN = re.compile(r"^PROD-\d{13}-[0-9A-F]{8}$")

WIDGET = {
    "name": "Widget",
    "description": "A widget",
    "quantity": 20,
    "price": 9.99,
    "image_ref": "http://testserver/uploads/abc-widget.png",
}


def _snapshot(product):
    return {
        "id": product.id,
        "code": product.code,
        "name": product.name,
        "description": product.description,
        "quantity": product.quantity,
        "price": product.price,
        "image_ref": product.image_ref,
        "created_at": product.created_at.replace(tzinfo=None),
        "updated_at": product.updated_at.replace(tzinfo=None),
    }


async def _insert(session_factory, **overrides):
    async with session_factory() as db:
        return await CatalogStore(db).insert({**WIDGET, **overrides})


async def _find(session_factory, product_id):
    async with session_factory() as db:
        return await CatalogStore(db).find_by_id(product_id)


async def _count(session_factory):
    async with session_factory() as db:
        return len(await CatalogStore(db).find_all())


def test_generated_codes_are_unique_and_well_formed():
    codes = [generate_product_code() for _ in range(2000)]
    assert len(set(codes)) == len(codes)
    assert all(CODE_PATTERN.match(code) for code in codes)


@pytest.mark.asyncio
async def test_insert_then_find_round_trip(session_factory):
    inserted = await _insert(session_factory)

    assert inserted.id
    assert CODE_PATTERN.match(inserted.code)
    assert inserted.created_at == inserted.updated_at

    found = await _find(session_factory, inserted.id)
    assert _snapshot(found) == _snapshot(inserted)
    for field, value in WIDGET.items():
        assert getattr(found, field) == value


@pytest.mark.asyncio
async def test_insert_ignores_caller_supplied_id_and_code(session_factory):
    product = await _insert(session_factory, id="mine", code="PROD-1")
    assert product.id != "mine"
    assert product.code != "PROD-1"


@pytest.mark.asyncio
async def test_find_all_returns_insertion_order(session_factory):
    names = ["First", "Second", "Third"]
    for name in names:
        await _insert(session_factory, name=name)

    async with session_factory() as db:
        products = await CatalogStore(db).find_all()
    assert [p.name for p in products] == names


@pytest.mark.asyncio
async def test_update_changes_only_given_fields(session_factory):
    product = await _insert(session_factory)
    before = _snapshot(await _find(session_factory, product.id))

    async with session_factory() as db:
        await CatalogStore(db).update(product.id, {"quantity": 5})

    after = _snapshot(await _find(session_factory, product.id))
    assert after["quantity"] == 5
    assert after["updated_at"] > before["updated_at"]

    unchanged = {k: v for k, v in before.items() if k not in ("quantity", "updated_at")}
    assert {k: after[k] for k in unchanged} == unchanged


@pytest.mark.asyncio
async def test_update_never_touches_id_or_code(session_factory):
    product = await _insert(session_factory)

    async with session_factory() as db:
        updated = await CatalogStore(db).update(
            product.id, {"id": "other", "code": "PROD-0", "name": "Renamed"}
        )

    assert updated.id == product.id
    assert updated.code == product.code
    assert updated.name == "Renamed"


@pytest.mark.asyncio
async def test_delete_then_find_fails(session_factory):
    product = await _insert(session_factory)

    async with session_factory() as db:
        await CatalogStore(db).delete(product.id)

    with pytest.raises(NotFoundError):
        await _find(session_factory, product.id)


@pytest.mark.asyncio
async def test_unknown_id_does_not_mutate_state(session_factory):
    product = await _insert(session_factory)
    before = _snapshot(await _find(session_factory, product.id))

    async with session_factory() as db:
        store = CatalogStore(db)
        with pytest.raises(NotFoundError):
            await store.update("does-not-exist", {"quantity": 1})
        with pytest.raises(NotFoundError):
            await store.delete("does-not-exist")

    assert await _count(session_factory) == 1
    assert _snapshot(await _find(session_factory, product.id)) == before


@pytest.mark.asyncio
async def test_duplicate_code_raises_conflict(session_factory, monkeypatch):
    monkeypatch.setattr(store_module, "generate_product_code", lambda: "PROD-1700000000000-00000000")
    await _insert(session_factory)

    with pytest.raises(ConflictError):
        await _insert(session_factory, name="Clash")

    assert await _count(session_factory) == 1


@pytest.mark.asyncio
async def test_concurrent_inserts_get_distinct_codes_and_ids(session_factory):
    products = await asyncio.gather(
        *(_insert(session_factory, name=f"Item {i}") for i in range(20))
    )

    assert len({p.code for p in products}) == 20
    assert len({p.id for p in products}) == 20
    assert await _count(session_factory) == 20


@pytest.mark.asyncio
async def test_insert_ignores_unknown_keys(session_factory):
    product = await _insert(session_factory, color="red")
    assert not hasattr(product, "color")
    assert await _count(session_factory) == 1


@pytest.mark.asyncio
async def test_unstorable_value_raises_storage_error(session_factory):
    with pytest.raises(StorageError):
        await _insert(session_factory, quantity=2**63)
    assert await _count(session_factory) == 0


@pytest.mark.asyncio
async def test_update_after_concurrent_delete_raises_not_found(session_factory):
    product = await _insert(session_factory)

    async with session_factory() as first, session_factory() as second:
        store = CatalogStore(first)
        await store.find_by_id(product.id)

        await CatalogStore(second).delete(product.id)

        with pytest.raises(NotFoundError):
            await store.update(product.id, {"quantity": 5})

    assert await _count(session_factory) == 0
