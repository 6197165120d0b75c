"""
Redis Cache Tests - Accelerator Evaluation Platform
tests/test_redis_cache.py

Tests for Redis caching functionality including cache hits,
misses, invalidation, and graceful degradation.
"""
import pytest
import redis
from unittest.mock import patch, MagicMock
from pydantic import BaseModel

from evaluation_platform.config import settings
from evaluation_platform.services.redis_cache import (
    RedisCache,
    rankings_key,
    scoreboard_key,
    version_key,
)
from evaluation_platform.services.cache import (
    TTL_SCOREBOARD,
    cached,
    get_cache,
    invalidate,
    reset_cache,
)


class MockModel(BaseModel):
    """Mock Pydantic model for testing."""
    id: str
    name: str


class TestRedisCache:
    """Tests for the RedisCache class."""

    def test_redis_cache_init(self):
        with patch('evaluation_platform.services.redis_cache.redis.from_url') as mock_from_url:
            cache = RedisCache()
            mock_from_url.assert_called_once_with(
                settings.REDIS_URL, decode_responses=True, socket_connect_timeout=5
            )
            assert cache.client is mock_from_url.return_value

    def test_cache_set_and_get(self):
        with patch('evaluation_platform.services.redis_cache.redis.from_url') as mock_from_url:
            mock_client = MagicMock()
            mock_from_url.return_value = mock_client
            pipe = mock_client.pipeline.return_value.__enter__.return_value
            pipe.get.return_value = None

            cache = RedisCache()
            model = MockModel(id="123", name="Test")

            assert cache.set_if_unchanged("test:key", model, 300, "0") is True
            pipe.watch.assert_called_once_with(version_key("test:key"))
            pipe.setex.assert_called_once_with("test:key", 300, model.model_dump_json())
            pipe.execute.assert_called_once()

            mock_client.get.return_value = model.model_dump_json()
            result = cache.get("test:key", MockModel)
            assert result == model

    def test_write_skipped_after_invalidation(self):
        with patch('evaluation_platform.services.redis_cache.redis.from_url') as mock_from_url:
            pipe = mock_from_url.return_value.pipeline.return_value.__enter__.return_value
            pipe.get.return_value = "1"

            cache = RedisCache()
            assert cache.set_if_unchanged("test:key", MockModel(id="1", name="stale"), 300, "0") is False
            pipe.setex.assert_not_called()
            pipe.execute.assert_not_called()

    def test_write_skipped_on_concurrent_bump(self):
        with patch('evaluation_platform.services.redis_cache.redis.from_url') as mock_from_url:
            pipe = mock_from_url.return_value.pipeline.return_value.__enter__.return_value
            pipe.get.return_value = "2"
            pipe.execute.side_effect = redis.WatchError()

            cache = RedisCache()
            assert cache.set_if_unchanged("test:key", MockModel(id="1", name="stale"), 300, "2") is False

    def test_version_and_bump(self):
        with patch('evaluation_platform.services.redis_cache.redis.from_url') as mock_from_url:
            mock_client = mock_from_url.return_value
            mock_client.get.return_value = None

            cache = RedisCache()
            assert cache.version("test:key") == "0"
            cache.bump("test:key")
            mock_client.incr.assert_called_once_with("test:key:version")

    def test_cache_get_miss(self):
        with patch('evaluation_platform.services.redis_cache.redis.from_url') as mock_from_url:
            mock_from_url.return_value.get.return_value = None
            assert RedisCache().get("nonexistent:key", MockModel) is None

    def test_cache_delete(self):
        with patch('evaluation_platform.services.redis_cache.redis.from_url') as mock_from_url:
            RedisCache().delete("test:key")
            mock_from_url.return_value.delete.assert_called_once_with("test:key")

    def test_key_builders(self):
        assert scoreboard_key("step-1") == "scoreboard:step-1"
        assert rankings_key("event-1") == "rankings:event-1"


class TestCacheSingleton:
    """Tests for the cache singleton."""

    def teardown_method(self):
        reset_cache()

    def test_disabled_cache_returns_none(self):
        with patch.object(settings, "CACHE_ENABLED", False):
            reset_cache()
            assert get_cache() is None

    def test_get_cache_returns_instance(self):
        with patch.object(settings, "CACHE_ENABLED", True), \
                patch('evaluation_platform.services.cache.RedisCache') as mock_cache_class:
            mock_instance = MagicMock()
            mock_cache_class.return_value = mock_instance

            reset_cache()
            assert get_cache() is mock_instance
            mock_instance.client.ping.assert_called_once()

    def test_get_cache_returns_none_when_redis_unavailable(self):
        with patch.object(settings, "CACHE_ENABLED", True), \
                patch('evaluation_platform.services.cache.RedisCache') as mock_cache_class:
            mock_cache_class.return_value.client.ping.side_effect = redis.ConnectionError("down")

            reset_cache()
            assert get_cache() is None

    def test_get_cache_singleton_behavior(self):
        with patch.object(settings, "CACHE_ENABLED", True), \
                patch('evaluation_platform.services.cache.RedisCache') as mock_cache_class:
            reset_cache()
            first = get_cache()
            second = get_cache()
            assert first is second
            mock_cache_class.assert_called_once()


class TestCacheHelpers:
    """Read-through and invalidation helpers."""

    def test_cached_hit_skips_compute(self):
        mock_cache = MagicMock()
        mock_cache.get.return_value = MockModel(id="1", name="cached")
        compute = MagicMock()
        with patch('evaluation_platform.services.cache.get_cache', return_value=mock_cache):
            result = cached("k", MockModel, 60, compute)
        assert result.name == "cached"
        compute.assert_not_called()

    def test_cached_miss_computes_and_stores(self):
        mock_cache = MagicMock()
        mock_cache.get.return_value = None
        mock_cache.version.return_value = "3"
        fresh = MockModel(id="1", name="fresh")
        with patch('evaluation_platform.services.cache.get_cache', return_value=mock_cache):
            assert cached("k", MockModel, 60, lambda: fresh) is fresh
        mock_cache.set_if_unchanged.assert_called_once_with("k", fresh, 60, "3")

    def test_cached_reads_version_before_compute(self):
        mock_cache = MagicMock()
        mock_cache.get.return_value = None
        mock_cache.version.return_value = "3"
        mock_cache.set_if_unchanged.return_value = False

        def compute():
            mock_cache.version.assert_called_once_with("k")
            return MockModel(id="1", name="fresh")

        with patch('evaluation_platform.services.cache.get_cache', return_value=mock_cache):
            assert cached("k", MockModel, 60, compute).name == "fresh"

    def test_cached_survives_redis_errors(self):
        mock_cache = MagicMock()
        mock_cache.get.side_effect = redis.ConnectionError("down")
        fresh = MockModel(id="1", name="fresh")
        with patch('evaluation_platform.services.cache.get_cache', return_value=mock_cache):
            assert cached("k", MockModel, 60, lambda: fresh) is fresh
        mock_cache.set_if_unchanged.assert_not_called()

    def test_cached_survives_write_errors(self):
        mock_cache = MagicMock()
        mock_cache.get.return_value = None
        mock_cache.version.return_value = "0"
        mock_cache.set_if_unchanged.side_effect = redis.ConnectionError("down")
        fresh = MockModel(id="1", name="fresh")
        with patch('evaluation_platform.services.cache.get_cache', return_value=mock_cache):
            assert cached("k", MockModel, 60, lambda: fresh) is fresh

    def test_cached_without_cache(self):
        with patch('evaluation_platform.services.cache.get_cache', return_value=None):
            assert cached("k", MockModel, 60, lambda: MockModel(id="1", name="x")).name == "x"

    def test_invalidate_bumps_version_then_deletes(self):
        mock_cache = MagicMock()
        with patch('evaluation_platform.services.cache.get_cache', return_value=mock_cache):
            invalidate("a")
        assert [c[0] for c in mock_cache.method_calls] == ["bump", "delete"]
        mock_cache.bump.assert_called_once_with("a")

    def test_invalidate_swallows_redis_errors(self):
        mock_cache = MagicMock()
        mock_cache.delete.side_effect = [redis.ConnectionError("down"), None]
        with patch('evaluation_platform.services.cache.get_cache', return_value=mock_cache):
            invalidate("a", "b")
        assert mock_cache.delete.call_count == 2


class TestServiceCaching:
    """Scoreboards are cached and dropped when scores change."""

    @pytest.fixture
    def mock_cache(self):
        cache = MagicMock()
        cache.get.return_value = None
        cache.version.return_value = "0"
        with patch('evaluation_platform.services.cache.get_cache', return_value=cache):
            yield cache

    def test_scoreboard_written_to_cache(self, service, pipeline, mock_cache):
        board = service.scoreboard(pipeline.step1.id)
        mock_cache.set_if_unchanged.assert_called_once_with(
            scoreboard_key(pipeline.step1.id), board, TTL_SCOREBOARD, "0"
        )

    def test_single_submission_view_not_cached(self, service, pipeline, make_submission, mock_cache):
        sub = make_submission()
        mock_cache.reset_mock()
        service.scoreboard(pipeline.step1.id, submission_id=sub.id)
        mock_cache.get.assert_not_called()
        mock_cache.set_if_unchanged.assert_not_called()

    def test_score_invalidates_scoreboard(self, pipeline, make_submission, score_as, mock_cache):
        sub = make_submission()
        mock_cache.reset_mock()
        score_as(sub, pipeline.step1, ["eval-1"], 8)
        mock_cache.bump.assert_called_with(scoreboard_key(pipeline.step1.id))
        mock_cache.delete.assert_called_with(scoreboard_key(pipeline.step1.id))

    def test_demo_score_invalidates_rankings(self, demo_service, admin_grant, judge_grant, mock_cache):
        event = demo_service.configure_event(admin_grant, "Demo", judge_ids=["judge-1"])
        project = demo_service.create_submission(event.id, "Rocket")
        mock_cache.reset_mock()
        demo_service.submit_score(
            judge_grant("judge-1"),
            project.id,
            {c.key: 7 for c in event.criteria},
        )
        mock_cache.delete.assert_called_once_with(rankings_key(event.id))
