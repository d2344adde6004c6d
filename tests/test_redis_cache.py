import json

import pytest

from epl_hub.cache import CacheError
from epl_hub.redis_cache import ExternalCache, ExternalCacheError


def test_unconfigured_cache_is_a_no_op():
    cache = ExternalCache.from_url(None)
    assert not cache.configured
    cache.set("k", [1], ttl=30)
    assert cache.lookup("k") == (False, None)
    assert cache.delete("k") is False
    assert cache.ping() is False
    cache.close()


def test_hit_returns_decoded_value_and_ttl_in_milliseconds(fake_redis):
    cache = ExternalCache(fake_redis)

    cache.set("league_table", [{"team": "Arsenal"}], ttl=30)

    assert fake_redis.ttls["league_table"] == 30000
    assert cache.lookup("league_table") == (True, [{"team": "Arsenal"}])


def test_miss(fake_redis):
    assert ExternalCache(fake_redis).lookup("nothing") == (False, None)


def test_undecodable_payload_raises(fake_redis):
    fake_redis.data["league_table"] = "{not json"
    with pytest.raises(ExternalCacheError):
        ExternalCache(fake_redis).lookup("league_table")


def test_connection_errors_are_cache_errors(fake_redis):
    fake_redis.fail = True
    cache = ExternalCache(fake_redis)

    with pytest.raises(CacheError):
        cache.lookup("k")
    with pytest.raises(ExternalCacheError):
        cache.set("k", 1, ttl=1)
    assert cache.ping() is False


def test_delete_and_close(fake_redis):
    fake_redis.data["k"] = json.dumps(1)
    cache = ExternalCache(fake_redis)

    assert cache.delete("k") is True
    assert cache.delete("k") is False
    cache.close()
    assert fake_redis.closed
