"""
Tests for the Redis cache, the email job queue, delivery providers,
the service container and the maintenance scripts
"""

import json
import smtplib
from unittest.mock import MagicMock, patch

import pytest
import redis
import requests

from api.config.settings import Settings
from api.services.container import ServiceContainer
from scripts.email_worker import drain
from scripts.run_scheduled_jobs import JOBS, run_jobs
from src.cache.cache_service import CacheService
from src.models.notification import PushToken
from src.models.order import Order, OrderStatus
from src.notifications.providers import ExpoPushProvider, SmtpEmailProvider, TwilioSmsProvider
from src.notifications.queue import EMAIL_QUEUE_KEY, EmailJob, EmailQueue, QueuedEmailProvider
from tests.factories import ALICE, BOB, NOW


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    response.text = json.dumps(payload or {})
    return response


class TestCacheService:
    def test_disabled_without_url(self):
        cache = CacheService(redis_url="")
        assert not cache.enabled
        assert cache.get("k") is None
        assert cache.delete_pattern("products:*") == 0
        cache.set("k", {"a": 1})
        cache.delete("k")

    def test_get_decodes_json(self):
        client = MagicMock()
        client.get.return_value = '{"a": 1}'
        assert CacheService(client=client).get("k") == {"a": 1}

    def test_set_uses_ttl(self):
        client = MagicMock()
        CacheService(client=client).set("k", {"a": 1}, ttl_seconds=30)
        client.setex.assert_called_once_with("k", 30, '{"a": 1}')

    def test_set_pydantic_model(self):
        client = MagicMock()
        job = EmailJob(id="j1", to="a@b.c", subject="s", html="<p/>", queued_at=NOW)
        CacheService(client=client).set("job", job)
        assert json.loads(client.setex.call_args.args[2])["id"] == "j1"

    def test_delete_pattern(self):
        client = MagicMock()
        client.scan_iter.return_value = iter(["products:list:1", "products:list:2"])
        client.delete.return_value = 2
        assert CacheService(client=client).delete_pattern("products:list:*") == 2
        client.delete.assert_called_once_with("products:list:1", "products:list:2")

    def test_delete_pattern_no_match(self):
        client = MagicMock()
        client.scan_iter.return_value = iter([])
        assert CacheService(client=client).delete_pattern("products:list:*") == 0
        client.delete.assert_not_called()

    def test_redis_errors_are_swallowed(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        client.scan_iter.side_effect = redis.ConnectionError("down")
        cache = CacheService(client=client)
        assert cache.get("k") is None
        assert cache.delete_pattern("x:*") == 0

    def test_unreachable_redis_disables_cache(self):
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("refused")
        with patch("src.cache.cache_service.redis.from_url", return_value=client):
            cache = CacheService(redis_url="redis://localhost:6379/0")
        assert not cache.enabled


class TestEmailQueue:
    def test_enqueue_pushes_json_job(self):
        client = MagicMock()
        assert EmailQueue(client).enqueue("bob@example.com", "Hi", "<p>Hi</p>")
        key, payload = client.rpush.call_args.args
        assert key == EMAIL_QUEUE_KEY
        assert json.loads(payload)["to"] == "bob@example.com"

    def test_enqueue_failure(self):
        client = MagicMock()
        client.rpush.side_effect = redis.ConnectionError("down")
        assert EmailQueue(client).enqueue("bob@example.com", "Hi", "<p>Hi</p>") is False

    def test_process_next_empty(self):
        client = MagicMock()
        client.blpop.return_value = None
        assert EmailQueue(client).process_next(MagicMock(), timeout=1) is None

    def test_process_next_sends(self):
        job = EmailJob(to="bob@example.com", subject="Hi", html="<p>Hi</p>")
        client = MagicMock()
        client.blpop.return_value = (EMAIL_QUEUE_KEY, job.model_dump_json())
        provider = MagicMock()
        provider.send.return_value = True

        assert EmailQueue(client).process_next(provider) is True
        provider.send.assert_called_once_with("bob@example.com", "Hi", "<p>Hi</p>")

    def test_malformed_job_dropped(self):
        client = MagicMock()
        client.blpop.return_value = (EMAIL_QUEUE_KEY, "{broken")
        provider = MagicMock()
        assert EmailQueue(client).process_next(provider) is False
        provider.send.assert_not_called()

    def test_queued_provider(self):
        queue = MagicMock()
        queue.enqueue.return_value = True
        provider = QueuedEmailProvider(queue)
        assert provider.is_configured()
        assert provider.send("bob@example.com", "Hi", "<p/>")
        queue.enqueue.assert_called_once_with("bob@example.com", "Hi", "<p/>")


class TestEmailWorker:
    def test_drain_once_counts_results(self):
        queue = MagicMock()
        queue.process_next.side_effect = [True, False, True, None]
        assert drain(queue, MagicMock(), once=True, timeout=1) == {"sent": 2, "failed": 1}


class TestSmtpEmailProvider:
    def _provider(self):
        return SmtpEmailProvider(host="smtp.example.com", user="noreply@tarodan.com", password="secret")

    def test_not_configured(self):
        assert SmtpEmailProvider().send("bob@example.com", "Hi", "<p/>") is False

    def test_sends_over_starttls(self):
        with patch("src.notifications.providers.smtplib.SMTP") as smtp:
            assert self._provider().send("bob@example.com", "Hi", "<p/>")
        server = smtp.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("noreply@tarodan.com", "secret")
        assert server.sendmail.call_args.args[1] == ["bob@example.com"]

    def test_authentication_failure(self):
        with patch("src.notifications.providers.smtplib.SMTP") as smtp:
            server = smtp.return_value.__enter__.return_value
            server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
            assert self._provider().send("bob@example.com", "Hi", "<p/>") is False

    def test_connection_failure(self):
        with patch("src.notifications.providers.smtplib.SMTP", side_effect=OSError("refused")):
            assert self._provider().send("bob@example.com", "Hi", "<p/>") is False


class TestExpoPushProvider:
    def test_no_tokens(self):
        session = MagicMock()
        assert ExpoPushProvider(session=session).send([], "t", "b") is False
        session.post.assert_not_called()

    def test_any_ok_ticket_counts(self):
        session = MagicMock()
        session.post.return_value = _response(payload={"data": [{"status": "error"}, {"status": "ok"}]})
        tokens = [PushToken(user_id=BOB, token="ExponentPushToken[a]"),
                  PushToken(user_id=BOB, token="ExponentPushToken[b]")]

        assert ExpoPushProvider(access_token="tok", session=session).send(tokens, "t", "b", {"x": 1})
        messages = session.post.call_args.kwargs["json"]
        assert [m["to"] for m in messages] == ["ExponentPushToken[a]", "ExponentPushToken[b]"]
        assert session.post.call_args.kwargs["headers"]["Authorization"] == "Bearer tok"

    def test_http_error(self):
        session = MagicMock()
        session.post.return_value = _response(status_code=500)
        tokens = [PushToken(user_id=BOB, token="ExponentPushToken[a]")]
        assert ExpoPushProvider(session=session).send(tokens, "t", "b") is False

    def test_network_error(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("timeout")
        tokens = [PushToken(user_id=BOB, token="ExponentPushToken[a]")]
        assert ExpoPushProvider(session=session).send(tokens, "t", "b") is False


class TestTwilioSmsProvider:
    def _provider(self, session):
        return TwilioSmsProvider(account_sid="AC123", auth_token="tok", from_number="+15550001111",
                                 session=session)

    def test_not_configured(self):
        assert TwilioSmsProvider(session=MagicMock()).send("+905551112233", "Hi") is False

    def test_sends_form(self):
        session = MagicMock()
        session.post.return_value = _response(status_code=201)
        assert self._provider(session).send("+905551112233", "Hi")
        assert "AC123" in session.post.call_args.args[0]
        assert session.post.call_args.kwargs["data"]["To"] == "+905551112233"
        assert session.post.call_args.kwargs["auth"] == ("AC123", "tok")

    def test_error_status(self):
        session = MagicMock()
        session.post.return_value = _response(status_code=400)
        assert self._provider(session).send("+905551112233", "Hi") is False


class TestServiceContainer:
    def test_memory_backend(self, monkeypatch):
        monkeypatch.setenv("PERSISTENCE_BACKEND", "memory")
        monkeypatch.delenv("REDIS_URL", raising=False)
        container = ServiceContainer.from_settings(Settings())
        assert not container.cache.enabled
        assert container.trade_service.audit is container.audit
        container.close()

    def test_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("PERSISTENCE_BACKEND", "mongo")
        with pytest.raises(ValueError):
            ServiceContainer.from_settings(Settings())

    def test_close_releases_redis(self):
        client = MagicMock()
        container = ServiceContainer.in_memory(redis_client=client)
        container.close()
        client.close.assert_called_once()
        assert container.redis_client is None


class TestScheduledJobs:
    def test_runs_selected_jobs(self, clock):
        container = ServiceContainer.in_memory(clock=clock)
        delivered = Order(buyer_id=ALICE, seller_id=BOB, product_id="p2", amount=300.0,
                          status=OrderStatus.DELIVERED, delivered_at=NOW)
        container.orders.save(delivered)

        results = run_jobs(container, JOBS, clock.advance(days=8))
        assert results == {"expire": 0, "trade-auto-confirm": 0, "order-auto-confirm": 1}
        assert container.orders.get(delivered.id).status == OrderStatus.COMPLETED

    def test_single_job(self, clock):
        container = ServiceContainer.in_memory(clock=clock)
        assert run_jobs(container, ["expire"], clock()) == {"expire": 0}
