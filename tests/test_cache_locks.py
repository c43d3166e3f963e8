from src.database import redis_real
from src.database.redis import RedisCache


def test_lock_is_exclusive_until_released(cache):
    token = cache.acquire_lock("kashier-webhook:order_1", ttl=30)

    assert token
    assert cache.acquire_lock("kashier-webhook:order_1", ttl=30) is None
    assert cache.release_lock("kashier-webhook:order_1", token) is True
    assert cache.acquire_lock("kashier-webhook:order_1", ttl=30)


def test_stale_token_does_not_release_new_holder():
    cache = RedisCache()
    first = cache.acquire_lock("kashier-webhook:order_1", ttl=30)
    # first holder's lock expires and another worker takes it
    cache._store.pop("lock:kashier-webhook:order_1")
    second = cache.acquire_lock("kashier-webhook:order_1", ttl=30)

    assert cache.release_lock("kashier-webhook:order_1", first) is False
    assert cache.acquire_lock("kashier-webhook:order_1", ttl=30) is None
    assert cache.release_lock("kashier-webhook:order_1", second) is True


class DummyScript:
    def __init__(self, store):
        self.store = store

    def __call__(self, keys, args):
        if self.store.get(keys[0]) == args[0]:
            del self.store[keys[0]]
            return 1
        return 0


class DummyRedis:
    def __init__(self):
        self.store = {}
        self.set_calls = []

    def set(self, key, value, nx=False, ex=None):
        self.set_calls.append((key, value, nx, ex))
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def register_script(self, script):
        return DummyScript(self.store)


def test_redis_cache_locks_with_token_and_compare_and_delete(monkeypatch):
    client = DummyRedis()
    monkeypatch.setattr(redis_real.redis, "from_url", lambda url, **kwargs: client)
    cache = redis_real.RedisCache("redis://localhost:6379/0")

    token = cache.acquire_lock("kashier-webhook:order_1", ttl=45)

    assert client.set_calls == [("lock:kashier-webhook:order_1", token, True, 45)]
    assert cache.acquire_lock("kashier-webhook:order_1", ttl=45) is None
    assert cache.release_lock("kashier-webhook:order_1", "someone-else") is False
    assert client.store == {"lock:kashier-webhook:order_1": token}
    assert cache.release_lock("kashier-webhook:order_1", token) is True
    assert client.store == {}
