"""Unit tests for header utilities."""

from pollypy.utils.headers import (
    REPLAY_HEADER,
    VOLATILE_HEADERS,
    add_replay_header,
    collect_headers,
    filter_response_headers,
    normalize_headers,
)


class TestNormalizeHeaders:
    """Tests for normalize_headers function."""

    def test_lowercases_names_and_strips_values(self):
        headers = {"Content-Type": " application/json ", "X-Trace": "abc"}

        assert normalize_headers(headers) == {
            "content-type": "application/json",
            "x-trace": "abc",
        }

    def test_empty(self):
        assert normalize_headers({}) == {}


class TestFilterResponseHeaders:
    """Tests for filter_response_headers function."""

    def test_removes_volatile_headers(self):
        """Should remove all volatile headers."""
        headers = {
            "Content-Type": "application/json",
            "Date": "Mon, 01 Oct 2025 12:00:00 GMT",
            "Server": "nginx/1.18.0",
            "Connection": "keep-alive",
            "Transfer-Encoding": "chunked",
        }

        filtered = filter_response_headers(headers)

        assert filtered == {"Content-Type": "application/json"}

    def test_case_insensitive(self):
        filtered = filter_response_headers({"DATE": "today", "x-keep": "1"})
        assert filtered == {"x-keep": "1"}

    def test_additional_volatile(self):
        filtered = filter_response_headers(
            {"X-Request-Id": "123", "Content-Type": "text/plain"},
            additional_volatile=["x-request-id"],
        )
        assert filtered == {"Content-Type": "text/plain"}

    def test_does_not_mutate_input(self):
        headers = {"Date": "today"}
        filter_response_headers(headers)
        assert headers == {"Date": "today"}

    def test_volatile_set_is_lowercase(self):
        assert all(name == name.lower() for name in VOLATILE_HEADERS)


class TestAddReplayHeader:
    """Tests for add_replay_header function."""

    def test_adds_marker(self):
        headers = add_replay_header({"content-type": "text/plain"})
        assert headers == {"content-type": "text/plain", REPLAY_HEADER: "true"}

    def test_returns_copy(self):
        original = {"content-type": "text/plain"}
        add_replay_header(original)
        assert REPLAY_HEADER not in original


class TestCollectHeaders:
    """Tests for collect_headers function."""

    def test_single_values_stay_strings(self):
        headers = collect_headers([(b"Content-Type", b"application/json"), (b"etag", b'"v1"')])
        assert headers == {"content-type": "application/json", "etag": '"v1"'}

    def test_repeated_header_keeps_every_value(self):
        headers = collect_headers(
            [
                (b"set-cookie", b"session=abc"),
                (b"content-type", b"text/plain"),
                (b"Set-Cookie", b"theme=dark"),
                (b"set-cookie", b"lang=en"),
            ]
        )
        assert headers["set-cookie"] == ["session=abc", "theme=dark", "lang=en"]
        assert headers["content-type"] == "text/plain"

    def test_filter_keeps_repeated_values(self):
        headers = filter_response_headers(
            collect_headers([(b"set-cookie", b"a=1"), (b"set-cookie", b"b=2"), (b"date", b"x")])
        )
        assert headers == {"set-cookie": ["a=1", "b=2"]}
