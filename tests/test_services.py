import json
import time
from types import SimpleNamespace

import jwt
import pytest
import redis.asyncio as redis
import requests
from fakeredis import aioredis as fake_aioredis
from pywebpush import WebPushException

from notes_api.core import redis_client
from notes_api.core.config import Settings
from notes_api.core.exceptions import AuthenticationError
from notes_api.services import push
from notes_api.services.blob_store import BlobStore, BlobStoreError, attachment_key
from notes_api.services.identity import IdentityVerifier
from notes_api.services.push import PushDeliveryError, PushSender, SubscriptionGone


class FakeAuth:
    def __init__(self, users):
        self.users = users
        self.calls = 0

    def get_user(self, token):
        self.calls += 1
        if token not in self.users:
            raise RuntimeError("invalid JWT: unable to parse or verify signature, project ref abc123")
        return SimpleNamespace(user=self.users[token])


class BrokenCache:
    async def get(self, key):
        raise redis.ConnectionError("down")

    async def setex(self, key, ttl, value):
        raise redis.ConnectionError("down")


def supabase_with(users):
    return SimpleNamespace(auth=FakeAuth(users))


async def test_identity_is_resolved_and_cached():
    client = supabase_with({"good": SimpleNamespace(id="alice")})
    cache = fake_aioredis.FakeRedis(decode_responses=True)
    verifier = IdentityVerifier(client, cache=cache, cache_ttl=30)

    assert (await verifier.verify("good")).id == "alice"
    assert (await verifier.verify("good")).id == "alice"
    assert client.auth.calls == 1

    keys = await cache.keys("*")
    assert len(keys) == 1
    assert "good" not in keys[0]
    assert 0 < await cache.ttl(keys[0]) <= 30


async def test_identity_provider_rejection_is_generic():
    verifier = IdentityVerifier(supabase_with({}))

    with pytest.raises(AuthenticationError) as exc_info:
        await verifier.verify("bad")
    assert "JWT" not in exc_info.value.message
    assert exc_info.value.status_code == 401


async def test_empty_user_is_rejected():
    verifier = IdentityVerifier(supabase_with({"none": None}))
    with pytest.raises(AuthenticationError):
        await verifier.verify("none")


async def test_cache_outage_falls_back_to_provider():
    client = supabase_with({"good": SimpleNamespace(id="alice")})
    verifier = IdentityVerifier(client, cache=BrokenCache())

    assert (await verifier.verify("good")).id == "alice"
    assert (await verifier.verify("good")).id == "alice"
    assert client.auth.calls == 2


def token_expiring_in(seconds):
    return jwt.encode({"sub": "alice", "exp": int(time.time()) + seconds}, "secret", algorithm="HS256")


async def test_cached_identity_does_not_outlive_token():
    token = token_expiring_in(10)
    client = supabase_with({token: SimpleNamespace(id="alice")})
    cache = fake_aioredis.FakeRedis(decode_responses=True)
    verifier = IdentityVerifier(client, cache=cache, cache_ttl=300)

    assert (await verifier.verify(token)).id == "alice"

    [key] = await cache.keys("*")
    assert 0 < await cache.ttl(key) <= 10


async def test_expired_token_is_not_cached():
    token = token_expiring_in(-5)
    client = supabase_with({token: SimpleNamespace(id="alice")})
    cache = fake_aioredis.FakeRedis(decode_responses=True)
    verifier = IdentityVerifier(client, cache=cache, cache_ttl=300)

    await verifier.verify(token)
    await verifier.verify(token)

    assert await cache.keys("*") == []
    assert client.auth.calls == 2


def test_cache_ttl_for_tokens_without_expiry():
    verifier = IdentityVerifier(supabase_with({}), cache_ttl=45)
    assert verifier.cache_ttl_for("opaque-token") == 45
    assert verifier.cache_ttl_for(jwt.encode({"sub": "alice"}, "secret", algorithm="HS256")) == 45
    assert verifier.cache_ttl_for(token_expiring_in(3600)) == 45


async def test_unreachable_redis_disables_cache():
    assert await redis_client.init_redis("redis://127.0.0.1:1/0") is None


async def test_missing_redis_url_disables_cache():
    assert await redis_client.init_redis("") is None


async def test_reachable_redis_is_returned(monkeypatch):
    fake = fake_aioredis.FakeRedis(decode_responses=True)
    monkeypatch.setattr(redis_client.redis, "from_url", lambda url, **kwargs: fake)

    assert await redis_client.init_redis("redis://cache:6379/0") is fake


def test_attachment_key_layout():
    assert attachment_key("alice", 7, "apuntes.pdf", now_ms=1760000000000) == "alice/7-1760000000000-apuntes.pdf"


@pytest.mark.parametrize("filename", ["../../etc/passwd", "C:\\Users\\me\\passwd", "dir/passwd"])
def test_attachment_key_drops_directories(filename):
    assert attachment_key("alice", 7, filename, now_ms=1) == "alice/7-1-passwd"


class FakeBucket:
    def __init__(self, fail=False):
        self.fail = fail
        self.uploads = []

    def upload(self, path, file, file_options=None):
        if self.fail:
            raise RuntimeError("bucket not found")
        self.uploads.append((path, file, file_options))

    def get_public_url(self, path):
        return f"https://project.supabase.co/storage/v1/object/public/adjuntos/{path}"


def storage_with(bucket):
    buckets = {}
    storage = SimpleNamespace(from_=lambda name: buckets.setdefault(name, bucket))
    return SimpleNamespace(storage=storage), buckets


async def test_blob_store_uploads_and_returns_public_url():
    bucket = FakeBucket()
    client, buckets = storage_with(bucket)

    url = await BlobStore(client, "adjuntos").put("alice/1-1-a.pdf", b"data", "application/pdf")

    assert url.endswith("/adjuntos/alice/1-1-a.pdf")
    assert list(buckets) == ["adjuntos"]
    assert bucket.uploads == [("alice/1-1-a.pdf", b"data", {"content-type": "application/pdf"})]


async def test_blob_store_failure_is_wrapped():
    client, _ = storage_with(FakeBucket(fail=True))
    with pytest.raises(BlobStoreError):
        await BlobStore(client, "adjuntos").put("k", b"data")


def push_response(status_code):
    response = requests.Response()
    response.status_code = status_code
    return response


SUBSCRIPTION = {"endpoint": "https://push.test/a", "keys": {"p256dh": "p", "auth": "a"}}


async def test_push_sender_calls_webpush(monkeypatch):
    calls = []
    monkeypatch.setattr(push, "webpush", lambda **kwargs: calls.append(kwargs))

    sender = PushSender("private-key", "admin@example.com", ttl=120)
    await sender.send(SUBSCRIPTION, {"title": "Recordatorio de Nota", "body": "próxima"})

    [call] = calls
    assert call["subscription_info"] == SUBSCRIPTION
    assert json.loads(call["data"]) == {"title": "Recordatorio de Nota", "body": "próxima"}
    assert call["vapid_private_key"] == "private-key"
    assert call["vapid_claims"] == {"sub": "mailto:admin@example.com"}
    assert call["ttl"] == 120


@pytest.mark.parametrize("status_code", [404, 410])
async def test_push_sender_reports_gone_subscriptions(monkeypatch, status_code):
    def webpush(**kwargs):
        raise WebPushException("Push failed", response=push_response(status_code))

    monkeypatch.setattr(push, "webpush", webpush)
    with pytest.raises(SubscriptionGone):
        await PushSender("k", "mailto:admin@example.com").send(SUBSCRIPTION, {})


@pytest.mark.parametrize("response", [push_response(500), push_response(429), None])
async def test_push_sender_reports_other_failures(monkeypatch, response):
    def webpush(**kwargs):
        raise WebPushException("Push failed", response=response)

    monkeypatch.setattr(push, "webpush", webpush)
    with pytest.raises(PushDeliveryError) as exc_info:
        await PushSender("k", "admin@example.com").send(SUBSCRIPTION, {})
    assert not isinstance(exc_info.value, SubscriptionGone)


@pytest.mark.parametrize("url,expected", [
    ("postgres://u:p@db:5432/notes", "postgresql+asyncpg://u:p@db:5432/notes"),
    ("postgresql://u:p@db:5432/notes", "postgresql+asyncpg://u:p@db:5432/notes"),
    ("sqlite+aiosqlite:///notes.db", "sqlite+aiosqlite:///notes.db"),
])
def test_database_url_uses_async_driver(url, expected):
    assert Settings(DATABASE_URL=url).DATABASE_URL == expected
