from fastapi.testclient import TestClient

from gym_api import main
from gym_api.main import app
from gym_api.utils.rate_limit import FixedWindowRateLimiter

client = TestClient(app)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_fixed_window_blocks_until_window_ends():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(max_requests=2, window_seconds=60, clock=clock)
    assert limiter.hit('a') == (True, 1, 0)
    assert limiter.hit('a') == (True, 0, 0)
    clock.now += 15
    allowed, remaining, retry_after = limiter.hit('a')
    assert not allowed
    assert remaining == 0
    assert retry_after == 45
    # other clients have their own window
    assert limiter.hit('b')[0]
    clock.now += 45
    assert limiter.hit('a') == (True, 1, 0)


def test_reset_clears_all_windows():
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
    assert limiter.hit('a')[0]
    assert not limiter.hit('a')[0]
    limiter.reset()
    assert limiter.hit('a')[0]


def test_api_answers_429_with_retry_after(monkeypatch, student_headers):
    monkeypatch.setattr(main.rate_limiter, 'max_requests', 2)
    first = client.get('/api/v1/exercises', headers=student_headers)
    assert first.status_code == 200
    assert first.headers['X-RateLimit-Remaining'] == '1'
    assert client.get('/api/v1/modifiers', headers=student_headers).status_code == 200
    blocked = client.get('/api/v1/exercises', headers=student_headers)
    assert blocked.status_code == 429
    assert int(blocked.headers['Retry-After']) >= 1
    assert blocked.json()['status'] == 'error'
    # health checks are not rate limited
    assert client.get('/health').status_code == 200
