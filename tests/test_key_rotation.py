"""
Tests for the bulk record re-encryption loop.
"""
import threading

import pytest

from navigator_vault import key_rotation
from navigator_vault.crypto import decrypt, derive_key
from navigator_vault.exceptions import PersistenceError, RotationFailed
from navigator_vault.key_rotation import rotate_records
from navigator_vault.models import Profile

USER_ID = "user-1"


class FlakyRestoreStore:
    """Wraps a store so that writes of given ids fail after the first one."""

    def __init__(self, inner, record_id):
        self._inner = inner
        self._record_id = record_id
        self._writes = 0

    async def list_encrypted_records(self, user_id):
        return await self._inner.list_encrypted_records(user_id)

    async def put_profile(self, user_id, profile):
        await self._inner.put_profile(user_id, profile)

    async def get_profile(self, user_id):
        return await self._inner.get_profile(user_id)

    async def put_encrypted_record(self, record_id, encrypted_body):
        if record_id == self._record_id:
            self._writes += 1
            if self._writes > 1:
                raise PersistenceError(f"restore of {record_id} failed")
        await self._inner.put_encrypted_record(record_id, encrypted_body)


@pytest.fixture
def keys(fast_params):
    return (
        derive_key("old", b"\x01" * 16, fast_params),
        derive_key("new", b"\x02" * 16, fast_params),
    )


class TestRotateRecords:
    """Tests for rotate_records."""

    @pytest.mark.asyncio
    async def test_batches(self, store, seed, keys):
        old_key, new_key = keys
        records = {f"r{i}": f"secret-{i}".encode() for i in range(7)}
        seed(old_key, records)
        seed(old_key, {"other": b"not mine"}, user_id="user-2")

        report = await rotate_records(store, USER_ID, old_key, new_key, batch_size=3)

        assert report.total == 7
        assert report.ok
        assert sorted(report.rotated) == sorted(records)
        for record_id, plaintext in records.items():
            assert decrypt(store.get_record(record_id).encrypted_body, new_key) == plaintext
        assert decrypt(store.get_record("other").encrypted_body, old_key) == b"not mine"

    @pytest.mark.asyncio
    async def test_writes_profile_last(self, store, seed, keys):
        old_key, new_key = keys
        seed(old_key, {"r1": b"one"})
        profile = Profile.from_bytes(b"\x02" * 16, b"\x03" * 32)

        await rotate_records(store, USER_ID, old_key, new_key, new_profile=profile)
        assert await store.get_profile(USER_ID) == profile

    @pytest.mark.asyncio
    async def test_decryption_failure_writes_nothing(self, store, seed, keys):
        old_key, new_key = keys
        seed(old_key, {"r1": b"one"})
        seed(new_key, {"r2": b"two"})
        before = store.get_record("r1")

        with pytest.raises(RotationFailed) as exc:
            await rotate_records(store, USER_ID, old_key, new_key)

        assert exc.value.stage == "decryption"
        assert exc.value.record_id == "r2"
        assert store.get_record("r1") == before

    @pytest.mark.asyncio
    async def test_later_batch_failure_restores_earlier_batches(self, store, seed, keys):
        old_key, new_key = keys
        seed(old_key, {"r1": b"one", "r2": b"two", "r3": b"three"})
        store.fail_record_writes.add("r3")

        with pytest.raises(RotationFailed) as exc:
            await rotate_records(store, USER_ID, old_key, new_key, batch_size=2)

        assert exc.value.succeeded == ["r1", "r2"]
        assert exc.value.failed == ["r3"]
        assert exc.value.restored == ["r1", "r2"]
        assert not exc.value.partial_writes
        assert decrypt(store.get_record("r2").encrypted_body, old_key) == b"two"

    @pytest.mark.asyncio
    async def test_unrestored_records_reported(self, store, seed, keys):
        old_key, new_key = keys
        seed(old_key, {"r1": b"one"})
        flaky = FlakyRestoreStore(store, "r1")
        store.fail_profile_writes = True
        profile = Profile.from_bytes(b"\x02" * 16, b"\x03" * 32)

        with pytest.raises(RotationFailed) as exc:
            await rotate_records(flaky, USER_ID, old_key, new_key, new_profile=profile)

        assert exc.value.succeeded == ["r1"]
        assert exc.value.restored == []
        assert exc.value.unrestored == ["r1"]
        assert exc.value.partial_writes is True
        assert "stage=persistence" in str(exc.value)
        assert decrypt(store.get_record("r1").encrypted_body, new_key) == b"one"

    @pytest.mark.asyncio
    async def test_reencryption_runs_off_event_loop(self, store, seed, keys, monkeypatch):
        """Record decryption happens in a worker thread, not on the loop."""
        old_key, new_key = keys
        seed(old_key, {"r1": b"one", "r2": b"two"})
        threads = []

        def tracking_decrypt(*args, **kwargs):
            threads.append(threading.get_ident())
            return decrypt(*args, **kwargs)

        monkeypatch.setattr(key_rotation, "decrypt", tracking_decrypt)
        loop_thread = threading.get_ident()

        report = await rotate_records(store, USER_ID, old_key, new_key)

        assert report.ok
        assert len(threads) == 2
        assert loop_thread not in threads
        assert decrypt(store.get_record("r2").encrypted_body, new_key) == b"two"

    @pytest.mark.asyncio
    async def test_empty_record_set(self, store, keys):
        old_key, new_key = keys
        report = await rotate_records(store, USER_ID, old_key, new_key)
        assert report.total == 0
        assert report.rotated == []

    def test_unknown_stage_rejected(self):
        with pytest.raises(ValueError):
            RotationFailed("boom", stage="network")

    def test_error_names_failing_record(self):
        err = RotationFailed(
            "x", stage="decryption", record_id="r9", failed=["r9"],
        )
        assert err.recoverable is True
        assert "record=r9" in str(err)
        assert err.partial_writes is False
