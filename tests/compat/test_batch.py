"""
Tests for atomic batched writes.
"""

import pytest

from docbridge.compat import (
    BackendError,
    DocumentStoreError,
    InvalidReferenceError,
    Timestamp,
    array_union,
    collection_ref,
    doc_ref,
    write_batch,
)
from docbridge.compat.batch import BATCH_RPC, MAX_BATCH_OPERATIONS


class TestWriteBatch:

    @pytest.mark.asyncio
    async def test_commit_sends_one_rpc(self, fake_supabase):
        batch = write_batch()
        batch.set(doc_ref(None, "users", "u1"), {"email": "a@x.io", "theme": "dark"})
        batch.update(doc_ref(None, "activities", "a1"), {"seen": True})
        batch.delete(doc_ref(None, "tenants/acme/cities/x"))

        applied = await batch.commit(fake_supabase)

        assert applied == 3
        assert len(fake_supabase.rpc_calls) == 1
        name, params = fake_supabase.rpc_calls[0]
        assert name == BATCH_RPC
        set_op, update_op, delete_op = params["p_operations"]
        assert set_op == {
            "op": "set",
            "path": "users/u1",
            "table": "users",
            "generic": False,
            "key": {"id": "u1"},
            "declared": {"email": "a@x.io"},
            "payload": {"theme": "dark"},
            "merge": False,
        }
        assert update_op["merge"] is True
        assert update_op["key"] == {"collection_path": "activities", "doc_id": "a1"}
        assert delete_op["op"] == "delete"
        assert delete_op["key"] == {"collection_path": "tenants/acme/cities", "doc_id": "x"}

    @pytest.mark.asyncio
    async def test_timestamps_are_encoded(self, fake_supabase):
        batch = write_batch()
        batch.set(doc_ref(None, "activities", "a1"), {"at": Timestamp(0)})
        await batch.commit(fake_supabase)
        payload = fake_supabase.rpc_calls[0][1]["p_operations"][0]["payload"]
        assert payload == {"at": "1970-01-01T00:00:00.000000Z"}

    @pytest.mark.asyncio
    async def test_empty_commit_makes_no_call(self, fake_supabase):
        assert await write_batch().commit(fake_supabase) == 0
        assert fake_supabase.rpc_calls == []

    @pytest.mark.asyncio
    async def test_commit_twice_rejected(self, fake_supabase):
        batch = write_batch().delete(doc_ref(None, "activities", "a1"))
        await batch.commit(fake_supabase)
        with pytest.raises(DocumentStoreError):
            await batch.commit(fake_supabase)
        with pytest.raises(DocumentStoreError):
            batch.delete(doc_ref(None, "activities", "a2"))

    @pytest.mark.asyncio
    async def test_rpc_failure_raises_backend_error(self, fake_supabase):
        fake_supabase.fail("rpc")
        batch = write_batch().set(doc_ref(None, "activities", "a1"), {"a": 1})
        with pytest.raises(BackendError):
            await batch.commit(fake_supabase)

    def test_collection_reference_rejected(self):
        with pytest.raises(InvalidReferenceError):
            write_batch().set(collection_ref(None, "activities"), {"a": 1})

    def test_array_union_rejected(self):
        with pytest.raises(InvalidReferenceError):
            write_batch().update(doc_ref(None, "activities", "a1"), {"tags": array_union("x")})

    def test_operation_cap(self):
        batch = write_batch()
        for index in range(MAX_BATCH_OPERATIONS):
            batch.delete(doc_ref(None, "activities", f"a{index}"))
        assert len(batch) == MAX_BATCH_OPERATIONS
        with pytest.raises(InvalidReferenceError):
            batch.delete(doc_ref(None, "activities", "one-too-many"))
