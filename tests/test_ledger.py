import pytest

from moderation.ledger import ViolationLedger, violation_key

CHAT_ID = -1001234567890
USER_ID = 987654321


@pytest.fixture
def ledger(kv_store):
    return ViolationLedger(kv_store)


@pytest.mark.asyncio
async def test_missing_record_is_zero(ledger):
    record = await ledger.get(CHAT_ID, USER_ID)
    assert record.count == 0
    assert record.chat_id == CHAT_ID
    assert record.user_id == USER_ID


@pytest.mark.asyncio
async def test_increment(ledger, kv_store):
    assert await ledger.increment(CHAT_ID, USER_ID) == 1
    assert await ledger.increment(CHAT_ID, USER_ID) == 2
    assert (await ledger.get(CHAT_ID, USER_ID)).count == 2
    assert await kv_store.get(violation_key(CHAT_ID, USER_ID)) == "2"


@pytest.mark.asyncio
async def test_counters_are_per_chat_and_user(ledger):
    await ledger.increment(CHAT_ID, USER_ID)
    await ledger.increment(CHAT_ID, USER_ID + 1)
    await ledger.increment(-100500, USER_ID)
    assert (await ledger.get(CHAT_ID, USER_ID)).count == 1
    assert (await ledger.get(CHAT_ID, USER_ID + 1)).count == 1
    assert (await ledger.get(-100500, USER_ID)).count == 1


@pytest.mark.asyncio
async def test_reset(ledger):
    await ledger.increment(CHAT_ID, USER_ID)
    await ledger.increment(CHAT_ID, USER_ID)
    await ledger.reset(CHAT_ID, USER_ID)
    assert (await ledger.get(CHAT_ID, USER_ID)).count == 0
    assert await ledger.increment(CHAT_ID, USER_ID) == 1


@pytest.mark.asyncio
async def test_decrement_never_goes_below_zero(ledger):
    """Прощение при нулевом счётчике оставляет 0"""
    assert await ledger.decrement(CHAT_ID, USER_ID) == 0
    await ledger.increment(CHAT_ID, USER_ID)
    assert await ledger.decrement(CHAT_ID, USER_ID) == 0
    assert await ledger.decrement(CHAT_ID, USER_ID) == 0


@pytest.mark.asyncio
async def test_corrupted_counter_is_zero(ledger, kv_store):
    await kv_store.put(violation_key(CHAT_ID, USER_ID), "abc")
    assert (await ledger.get(CHAT_ID, USER_ID)).count == 0
    assert await ledger.increment(CHAT_ID, USER_ID) == 1


@pytest.mark.asyncio
async def test_negative_counter_is_clamped(ledger, kv_store):
    await kv_store.put(violation_key(CHAT_ID, USER_ID), "-4")
    assert (await ledger.get(CHAT_ID, USER_ID)).count == 0


@pytest.mark.asyncio
async def test_ttl_is_passed_to_store(kv_store, monkeypatch):
    """С ttl_seconds счётчик записывается со сроком жизни"""
    calls = []
    original_put = kv_store.put

    async def recording_put(key, value, expiration_ttl=None):
        calls.append(expiration_ttl)
        await original_put(key, value, expiration_ttl=expiration_ttl)

    monkeypatch.setattr(kv_store, "put", recording_put)

    await ViolationLedger(kv_store, ttl_seconds=86400).increment(CHAT_ID, USER_ID)
    await ViolationLedger(kv_store).increment(CHAT_ID, USER_ID)
    assert calls == [86400, None]
