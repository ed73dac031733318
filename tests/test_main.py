from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from relaybot.config import Settings
from relaybot.main import create_app
from relaybot.storage.kv_store import RedisKeyValueStore
from tests.conftest import FakeRedis


class TestLifecycle:
    def test_startup_requires_bot_token(self):
        app = create_app(Settings(telegram_bot_token="", _env_file=None))

        with pytest.raises(RuntimeError, match="TELEGRAM_BOT_TOKEN"):
            with TestClient(app):
                pass

    def test_resources_opened_and_closed(self, settings):
        redis_client = FakeRedis()
        store = RedisKeyValueStore(redis_client)

        with patch("relaybot.main.RedisKeyValueStore.from_url", return_value=store) as from_url:
            app = create_app(settings)
            with TestClient(app) as client:
                assert client.get("/health").json() == {"status": "ok"}
                services = app.state.services
                assert services.registry.store is store
                assert services.conversations.store is store
                assert services.orchestrator.locks is None

        from_url.assert_called_once_with(settings.redis_url, prefix="relaybot")
        assert redis_client.closed is True
        assert app.state.http_client.is_closed is True

    def test_serialized_exchanges_enable_user_locks(self, settings):
        settings.serialize_exchanges = True
        store = RedisKeyValueStore(FakeRedis())

        with patch("relaybot.main.RedisKeyValueStore.from_url", return_value=store):
            app = create_app(settings)
            with TestClient(app):
                assert app.state.services.orchestrator.locks is not None
