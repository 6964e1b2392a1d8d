"""
Tests for scripts/load_test.py.

HTTP is mocked, except for the rate-limit run, which goes through the Flask app in-process.
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest


# ---------------------------------------------------------------------------
# Import the module under test
# ---------------------------------------------------------------------------

# Add scripts/ to path so we can import load_test directly
SCRIPTS_DIR = Path(__file__).parent.parent / "scripts"
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))

import load_test as lt


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_mock_response(status_code: int = 200, content: bytes = b'{"ok": true}') -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = content
    return resp


def _patched_client(mock_client_cls, mock_ctx):
    mock_client_cls.return_value.__enter__ = lambda s: mock_ctx
    mock_client_cls.return_value.__exit__ = MagicMock(return_value=False)


# ---------------------------------------------------------------------------
# CLI argument parsing
# ---------------------------------------------------------------------------

class TestArgParser:
    def test_required_url(self):
        """--url is required."""
        parser = lt.build_arg_parser()
        with pytest.raises(SystemExit):
            parser.parse_args([])

    def test_defaults(self):
        """Default concurrency=5, duration=10, scenario=all."""
        args = lt.build_arg_parser().parse_args(["--url", "http://localhost:5000"])
        assert args.concurrency == 5
        assert args.duration == 10
        assert args.scenario == "all"
        assert args.output == "load-test-results.json"
        assert args.timeout == 10.0

    def test_custom_args(self):
        args = lt.build_arg_parser().parse_args([
            "--url", "https://example.com",
            "--concurrency", "20",
            "--duration", "60",
            "--scenario", "chat",
            "--output", "/tmp/results.json",
            "--timeout", "15.0",
        ])
        assert args.concurrency == 20
        assert args.duration == 60
        assert args.scenario == "chat"
        assert args.output == "/tmp/results.json"
        assert args.timeout == 15.0

    def test_invalid_scenario_rejected(self):
        with pytest.raises(SystemExit):
            lt.build_arg_parser().parse_args(["--url", "http://localhost", "--scenario", "landing"])


# ---------------------------------------------------------------------------
# Scenario registry
# ---------------------------------------------------------------------------

class TestScenarioRegistry:
    def test_scenarios_registered(self):
        assert set(lt.SCENARIOS) == {"health", "chat", "search"}

    def test_scenario_has_required_fields(self):
        for key, scenario in lt.SCENARIOS.items():
            for field_name in ("method", "path", "name"):
                assert field_name in scenario, f"{key} missing {field_name}"

    def test_chat_is_post(self):
        assert lt.SCENARIOS["chat"]["method"] == "POST"
        assert lt.SCENARIOS["chat"]["path"] == "/api/chat"

    def test_resolve_scenarios(self):
        assert lt.resolve_scenarios("all") == ["health", "chat", "search"]
        assert lt.resolve_scenarios("chat") == ["chat"]

    def test_questions_cycle(self):
        seen = [lt.next_question() for _ in range(len(lt.CHAT_QUESTIONS) * 2)]
        assert set(seen) == set(lt.CHAT_QUESTIONS)


# ---------------------------------------------------------------------------
# Result aggregation + percentile math
# ---------------------------------------------------------------------------

class TestScenarioStats:
    def _make_stats(self, latencies: list[float], error_count: int = 0) -> lt.ScenarioStats:
        return lt.ScenarioStats(
            scenario="chat",
            name="Chat Answer",
            total_requests=len(latencies),
            error_count=error_count,
            latencies_ms=latencies,
        )

    def test_p50_median(self):
        s = self._make_stats([10.0, 20.0, 30.0, 40.0, 50.0])
        assert s.percentile(50) == 30.0

    def test_p95_p99(self):
        s = self._make_stats([float(x) for x in range(1, 101)])
        assert s.percentile(95) == 95.0
        assert s.percentile(99) == 99.0

    def test_mean(self):
        s = self._make_stats([10.0, 20.0, 30.0])
        assert abs(s.mean - 20.0) < 0.01

    def test_error_rate(self):
        s = self._make_stats([50.0] * 4, error_count=1)
        assert abs(s.error_rate - 0.25) < 0.001

    def test_empty(self):
        s = lt.ScenarioStats(scenario="health", name="Health")
        assert s.percentile(50) == 0.0
        assert s.mean == 0.0
        assert s.error_rate == 0.0
        assert s.mean_response_bytes == 0.0

    def test_add_tracks_errors_and_sizes(self):
        s = lt.ScenarioStats(scenario="chat", name="Chat Answer")
        s.add(lt.RequestResult("chat", 200, 12.0, response_bytes=800))
        s.add(lt.RequestResult("chat", 500, 30.0, response_bytes=40))
        s.add(lt.RequestResult("chat", None, 5.0, error="Timeout: timed out"))
        assert s.total_requests == 3
        assert s.error_count == 2
        assert s.latencies_ms == [12.0, 30.0, 5.0]
        assert s.mean_response_bytes == 800.0


# ---------------------------------------------------------------------------
# JSON output format
# ---------------------------------------------------------------------------

class TestJsonOutputFormat:
    def _make_populated_stats(self) -> dict[str, lt.ScenarioStats]:
        s = lt.ScenarioStats(
            scenario="chat",
            name="Chat Answer",
            total_requests=100,
            error_count=2,
            latencies_ms=[float(x) for x in range(10, 110)],
            response_sizes=[900] * 98,
        )
        return {"chat": s}

    def test_meta(self):
        output = lt.build_json_output(self._make_populated_stats(), 30.0, "http://localhost", 10)
        assert output["meta"]["base_url"] == "http://localhost"
        assert output["meta"]["concurrency"] == 10
        assert output["meta"]["scenarios"] == ["chat"]

    def test_result_fields(self):
        output = lt.build_json_output(self._make_populated_stats(), 30.0, "http://localhost", 10)
        result = output["results"]["chat"]
        for key in ("p50", "p95", "p99", "mean", "min", "max"):
            assert key in result["latency_ms"]
        assert result["requests_per_second"] == pytest.approx(100 / 30.0, rel=0.01)
        assert result["error_count"] == 2
        assert result["mean_response_bytes"] == 900.0

    def test_summary_totals(self):
        output = lt.build_json_output(self._make_populated_stats(), 30.0, "http://localhost", 10)
        assert output["summary"]["total_requests"] == 100
        assert output["summary"]["total_errors"] == 2

    def test_json_serializable(self):
        output = lt.build_json_output(self._make_populated_stats(), 30.0, "http://localhost", 10)
        assert json.loads(json.dumps(output))["meta"]["concurrency"] == 10


# ---------------------------------------------------------------------------
# make_request with mocked httpx
# ---------------------------------------------------------------------------

class TestMakeRequest:
    def test_successful_request(self):
        with patch("load_test.httpx.Client") as mock_client_cls:
            mock_ctx = MagicMock()
            _patched_client(mock_client_cls, mock_ctx)
            mock_ctx.request.return_value = make_mock_response(200, b"x" * 64)

            result = lt.make_request("http://localhost:5000", "health")

        assert result.status_code == 200
        assert result.error is None
        assert result.response_bytes == 64
        assert result.success is True

    def test_timeout_returns_error(self):
        with patch("load_test.httpx.Client") as mock_client_cls:
            mock_ctx = MagicMock()
            _patched_client(mock_client_cls, mock_ctx)
            mock_ctx.request.side_effect = lt.httpx.TimeoutException("timed out")

            result = lt.make_request("http://localhost:5000", "health")

        assert result.status_code is None
        assert "Timeout" in result.error
        assert result.success is False

    def test_connection_error(self):
        with patch("load_test.httpx.Client") as mock_client_cls:
            mock_ctx = MagicMock()
            _patched_client(mock_client_cls, mock_ctx)
            mock_ctx.request.side_effect = lt.httpx.ConnectError("refused")

            result = lt.make_request("http://localhost:5000", "chat")

        assert result.error.startswith("RequestError")

    def test_500_is_not_success(self):
        with patch("load_test.httpx.Client") as mock_client_cls:
            mock_ctx = MagicMock()
            _patched_client(mock_client_cls, mock_ctx)
            mock_ctx.request.return_value = make_mock_response(500)

            result = lt.make_request("http://localhost:5000", "health")

        assert result.status_code == 500
        assert result.success is False

    def test_chat_posts_message(self):
        calls = []

        def capture_request(method, url, json=None):
            calls.append((method, url, json))
            return make_mock_response(200)

        with patch("load_test.httpx.Client") as mock_client_cls:
            mock_ctx = MagicMock()
            mock_ctx.request.side_effect = capture_request
            _patched_client(mock_client_cls, mock_ctx)

            lt.make_request("http://myapp.com/", "chat")

        method, url, body = calls[0]
        assert method == "POST"
        assert url == "http://myapp.com/api/chat"
        assert body["message"] in lt.CHAT_QUESTIONS

    def test_get_sends_no_body(self):
        calls = []

        def capture_request(method, url, json=None):
            calls.append((method, url, json))
            return make_mock_response(200)

        with patch("load_test.httpx.Client") as mock_client_cls:
            mock_ctx = MagicMock()
            mock_ctx.request.side_effect = capture_request
            _patched_client(mock_client_cls, mock_ctx)

            lt.make_request("http://myapp.com", "search")

        assert calls == [("GET", "http://myapp.com/api/search?q=points", None)]


# ---------------------------------------------------------------------------
# Run loop and main
# ---------------------------------------------------------------------------

class TestRunLoadTest:
    def test_zero_duration_runs_one_request_per_slot(self):
        with patch.object(lt, "make_request",
                          side_effect=lambda base, key, timeout: lt.RequestResult(key, 200, 1.0)):
            stats, duration = lt.run_load_test("http://x", ["health", "chat"], concurrency=4, duration=0)
        assert sum(s.total_requests for s in stats.values()) == 4
        assert stats["health"].total_requests == 2
        assert duration >= 0

    def test_main_exit_code_on_errors(self, tmp_path):
        out = tmp_path / "results.json"
        with patch.object(lt, "make_request",
                          side_effect=lambda base, key, timeout: lt.RequestResult(key, 503, 1.0)):
            code = lt.main(["--url", "http://x", "--duration", "0", "--concurrency", "2",
                            "--scenario", "chat", "--output", str(out)])
        assert code == 1
        assert json.loads(out.read_text())["summary"]["total_errors"] == 2

    def test_main_success(self, tmp_path):
        out = tmp_path / "results.json"
        with patch.object(lt, "make_request",
                          side_effect=lambda base, key, timeout: lt.RequestResult(key, 200, 1.0)):
            code = lt.main(["--url", "http://x", "--duration", "0", "--output", str(out)])
        assert code == 0


# ---------------------------------------------------------------------------
# Against the real app's rate limiter
# ---------------------------------------------------------------------------

class TestRateLimitedRuns:
    def test_429_counted_separately(self):
        s = lt.ScenarioStats(scenario="chat", name="Chat Answer")
        s.add(lt.RequestResult("chat", 200, 5.0, response_bytes=100))
        s.add(lt.RequestResult("chat", 429, 1.0, response_bytes=20))
        assert s.rate_limited_count == 1
        assert s.error_count == 0
        assert s.error_rate == 0.0
        assert s.response_sizes == [100]
        assert s.to_dict(1.0)["rate_limited_count"] == 1

    def test_run_past_chat_limit_is_not_an_error(self, monkeypatch):
        import web.helpers as helpers
        from web.app import app

        monkeypatch.setattr(helpers, "_redis_checked", True)
        monkeypatch.setattr(helpers, "_redis_client", None)

        real_client = lt.httpx.Client

        def wsgi_client(**kwargs):
            return real_client(transport=lt.httpx.WSGITransport(app=app), **kwargs)

        stats = lt.ScenarioStats(scenario="chat", name="Chat Answer")
        total = helpers.RATE_LIMIT_MAX_CHAT + 20
        with patch("load_test.httpx.Client", side_effect=wsgi_client):
            for _ in range(total):
                stats.add(lt.make_request("http://testserver", "chat"))

        assert stats.total_requests == total
        assert stats.rate_limited_count == 20
        assert stats.error_count == 0
        assert stats.error_rate == 0.0

    def test_main_exit_zero_when_only_rate_limited(self, tmp_path):
        out = tmp_path / "results.json"
        with patch.object(lt, "make_request",
                          side_effect=lambda base, key, timeout: lt.RequestResult(key, 429, 1.0)):
            code = lt.main(["--url", "http://x", "--duration", "0", "--scenario", "chat",
                            "--output", str(out)])
        assert code == 0
        assert json.loads(out.read_text())["summary"]["total_rate_limited"] == 5
