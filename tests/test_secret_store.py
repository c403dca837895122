import asyncio
import json
import pytest
from unittest.mock import AsyncMock, MagicMock

from passshare.adapters.memory_store.stores import MemorySecretBackend
from passshare.adapters.redis.stores import RedisSecretBackend
from passshare.domain.secrets.store import (
    SECRET_ID_ALPHABET, SECRET_ID_LENGTH, SecretStore, is_valid_secret_id,
)
from passshare.domain.interfaces import secret_key
from passshare.errors import StorageUnavailable


@pytest.fixture
def memory_backend(clock):
    return MemorySecretBackend(clock=clock)


@pytest.fixture
def store(memory_backend):
    return SecretStore(memory_backend, ttl_seconds=86400, clock=lambda: 1700000000.123)


@pytest.mark.asyncio
async def test_write_then_take_once(store):
    secret_id = await store.write("ENVELOPE_TEXT_abcdefgh")

    assert len(secret_id) == SECRET_ID_LENGTH
    assert all(c in SECRET_ID_ALPHABET for c in secret_id)
    assert is_valid_secret_id(secret_id)

    record = await store.take(secret_id)
    assert record is not None
    assert record.id == secret_id
    assert record.encrypted_data == "ENVELOPE_TEXT_abcdefgh"
    assert record.created_at == 1700000000123

    assert await store.take(secret_id) is None


@pytest.mark.asyncio
async def test_take_unknown_id(store):
    assert await store.take("A" * 21) is None


@pytest.mark.asyncio
async def test_concurrent_takes_deliver_once(store):
    secret_id = await store.write("payload")

    results = await asyncio.gather(*(store.take(secret_id) for _ in range(10)))

    delivered = [r for r in results if r is not None]
    assert len(delivered) == 1
    assert delivered[0].encrypted_data == "payload"


@pytest.mark.asyncio
async def test_expired_secret_is_absent(store, memory_backend, clock):
    secret_id = await store.write("payload")
    assert len(memory_backend) == 1

    clock.advance(86400)

    assert len(memory_backend) == 0
    assert await store.take(secret_id) is None


@pytest.mark.asyncio
async def test_expired_secrets_are_purged_from_memory(store, memory_backend, clock):
    for _ in range(100):
        await store.write("payload")
    assert len(memory_backend._entries) == 100

    clock.advance(10 * 86400)
    fresh_id = await store.write("payload")

    assert list(memory_backend._entries) == [secret_key(fresh_id)]


@pytest.mark.asyncio
async def test_secret_available_just_before_expiry(store, clock):
    secret_id = await store.write("payload")
    clock.advance(86399)
    assert await store.take(secret_id) is not None


@pytest.mark.asyncio
async def test_ids_are_unique(store):
    ids = {await store.write("x") for _ in range(200)}
    assert len(ids) == 200


@pytest.mark.asyncio
async def test_write_failure_is_storage_unavailable():
    backend = MagicMock()
    backend.put = AsyncMock(side_effect=ConnectionError("redis down"))
    store = SecretStore(backend)

    with pytest.raises(StorageUnavailable):
        await store.write("payload")


@pytest.mark.asyncio
async def test_read_failure_is_not_reported_as_absent():
    backend = MagicMock()
    backend.get_and_delete = AsyncMock(side_effect=TimeoutError())
    store = SecretStore(backend)

    with pytest.raises(StorageUnavailable):
        await store.take("A" * 21)


@pytest.mark.asyncio
async def test_corrupt_record_is_storage_unavailable():
    backend = MagicMock()
    backend.get_and_delete = AsyncMock(return_value="{not json")
    store = SecretStore(backend)

    with pytest.raises(StorageUnavailable):
        await store.take("A" * 21)


@pytest.mark.asyncio
async def test_failure_log_omits_secret_material(caplog):
    backend = MagicMock()
    backend.put = AsyncMock(side_effect=ConnectionError("boom"))
    store = SecretStore(backend)

    with pytest.raises(StorageUnavailable):
        await store.write("TOP_SECRET_ENVELOPE")

    assert "TOP_SECRET_ENVELOPE" not in caplog.text
    assert "boom" not in caplog.text
    assert "ConnectionError" in caplog.text


@pytest.mark.asyncio
async def test_redis_backend_uses_set_ex_and_getdel():
    mock_redis = MagicMock()
    mock_redis.set = AsyncMock(return_value=True)
    mock_redis.getdel = AsyncMock(return_value=json.dumps({"encryptedData": "abc", "createdAt": 5}))

    store = SecretStore(RedisSecretBackend(mock_redis), ttl_seconds=86400)
    secret_id = await store.write("abc")

    key, value = mock_redis.set.call_args.args
    assert key == f"secret:{secret_id}"
    assert json.loads(value)["encryptedData"] == "abc"
    assert mock_redis.set.call_args.kwargs == {"ex": 86400}

    record = await store.take(secret_id)
    mock_redis.getdel.assert_awaited_once_with(f"secret:{secret_id}")
    assert record.encrypted_data == "abc"
    assert record.created_at == 5


@pytest.mark.asyncio
async def test_redis_backend_absent():
    mock_redis = MagicMock()
    mock_redis.getdel = AsyncMock(return_value=None)

    store = SecretStore(RedisSecretBackend(mock_redis))
    assert await store.take("A" * 21) is None


def test_secret_id_validation():
    assert is_valid_secret_id("V1StGXR8_Z5jdHi6B-myT")
    assert not is_valid_secret_id("V1StGXR8_Z5jdHi6B-my")
    assert not is_valid_secret_id("V1StGXR8_Z5jdHi6B-myT1")
    assert not is_valid_secret_id("V1StGXR8_Z5jdHi6B-my!")
    assert not is_valid_secret_id("")


def test_secret_key_layout():
    import passshare.domain.secrets.store as store_module

    assert secret_key("V1StGXR8_Z5jdHi6B-myT") == "secret:V1StGXR8_Z5jdHi6B-myT"
    # Key naming belongs to the domain; the store does not reach into the redis adapter
    assert "passshare.adapters.redis.client" not in {
        getattr(value, "__module__", None) for value in vars(store_module).values()
    }
