"""Tests for the redirect rate limiter."""

from concurrent.futures import ThreadPoolExecutor

from streamhouse.core.rate_limit import RateLimiter


class TestRateLimiter:
    
    def test_sixth_call_in_window_rejected(self):
        limiter = RateLimiter()
        results = [limiter.admit("ip:user", 5, 300_000) for _ in range(6)]
        assert results == [True, True, True, True, True, False]
    
    def test_reset_restores_budget(self):
        limiter = RateLimiter()
        assert limiter.admit("k", 1, 60_000)
        assert not limiter.admit("k", 1, 60_000)
        limiter.reset()
        assert limiter.admit("k", 1, 60_000)
    
    def test_keys_are_independent(self):
        limiter = RateLimiter()
        assert limiter.admit("a", 1, 60_000)
        assert not limiter.admit("a", 1, 60_000)
        assert limiter.admit("b", 1, 60_000)
    
    def test_zero_limit_rejects(self):
        assert not RateLimiter().admit("k", 0, 60_000)
    
    def test_disabled_always_admits(self):
        limiter = RateLimiter(enabled=False)
        assert all(limiter.admit("k", 1, 60_000) for _ in range(10))
    
    def test_sub_second_window_rounds_up(self):
        limiter = RateLimiter()
        assert limiter.admit("k", 1, 10)
        assert not limiter.admit("k", 1, 10)
    
    def test_concurrent_admission_never_exceeds_limit(self):
        limiter = RateLimiter()
        assert limiter.admit("burst", 10, 60_000)
        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: limiter.admit("burst", 10, 60_000), range(100)))
        assert results.count(True) == 9
