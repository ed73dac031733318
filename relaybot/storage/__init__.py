from relaybot.storage.kv_store import KeyValueStore, RedisKeyValueStore

__all__ = ["KeyValueStore", "RedisKeyValueStore"]
