"""镜像清单拉取器测试"""

from __future__ import annotations

import http.client
import socket
import urllib.error

import pytest

from compinstall.core.exceptions import FetchError
from compinstall.core.pkg.fetcher import ManifestFetcher, http_error, iter_mirrors

M1 = "https://m1.test"
M2 = "https://m2.test"


def _no_headers(url: str) -> dict[str, str]:
    return {}


class TestIterMirrors:
    def test_order_and_last(self) -> None:
        mirrors = list(iter_mirrors([M1 + "/", M2]))
        assert [m.url for m in mirrors] == [M1, M2]
        assert [m.index for m in mirrors] == [1, 2]
        assert [m.last for m in mirrors] == [False, True]

    def test_empty(self) -> None:
        assert list(iter_mirrors([])) == []


class TestManifestFetcher:
    def test_fetch_ok(self, fake_http) -> None:
        fake_http.routes[f"{M1}/a/b/1.0.0/component.json"] = {"scripts": ["index.js"]}
        mirror = next(iter_mirrors([M1]))
        manifest = ManifestFetcher(fake_http, _no_headers).fetch("a/b", "1.0.0", mirror)
        assert manifest.files() == ["index.js"]
        assert manifest.repo == f"{M1}/a/b"

    def test_headers_sent(self, fake_http) -> None:
        url = f"{M1}/a/b/1.0.0/component.json"
        fake_http.routes[url] = {}
        mirror = next(iter_mirrors([M1]))
        ManifestFetcher(fake_http, lambda u: {"Authorization": "Basic eA=="}).fetch("a/b", "1.0.0", mirror)
        assert fake_http.headers[url] == {"Authorization": "Basic eA=="}

    @pytest.mark.parametrize("last", [False, True])
    def test_http_status_error(self, fake_http, last: bool) -> None:
        remotes = [M1] if last else [M1, M2]
        mirror = next(iter_mirrors(remotes))
        with pytest.raises(FetchError) as exc_info:
            ManifestFetcher(fake_http, _no_headers).fetch("a/b", "1.0.0", mirror)
        err = exc_info.value
        assert err.status == 404
        assert err.last is last
        assert err.url == f"{M1}/a/b/1.0.0/component.json"
        assert str(err) == f'failed to fetch {M1}/a/b/1.0.0/component.json, got 404 "Not Found"'

    def test_dns_failure_rewritten(self, fake_http) -> None:
        fake_http.routes[f"{M1}/a/b/1.0.0/component.json"] = urllib.error.URLError(
            socket.gaierror(-2, "Name or service not known"),
        )
        mirror = next(iter_mirrors([M1]))
        with pytest.raises(FetchError, match="^dns lookup failed$") as exc_info:
            ManifestFetcher(fake_http, _no_headers).fetch("a/b", "1.0.0", mirror)
        assert exc_info.value.status is None
        assert exc_info.value.last is True

    def test_connection_error_mentions_url(self, fake_http) -> None:
        url = f"{M1}/a/b/1.0.0/component.json"
        fake_http.routes[url] = urllib.error.URLError(ConnectionRefusedError(111, "Connection refused"))
        mirror = next(iter_mirrors([M1]))
        with pytest.raises(FetchError, match=f"in {url}"):
            ManifestFetcher(fake_http, _no_headers).fetch("a/b", "1.0.0", mirror)

    def test_truncated_body(self, fake_http) -> None:
        url = f"{M1}/a/b/1.0.0/component.json"
        fake_http.routes[url] = http.client.IncompleteRead(b"{\"scr", 10)
        mirror = next(iter_mirrors([M1, M2]))
        with pytest.raises(FetchError, match=f"in {url}") as exc_info:
            ManifestFetcher(fake_http, _no_headers).fetch("a/b", "1.0.0", mirror)
        assert exc_info.value.last is False

    def test_invalid_json(self, fake_http) -> None:
        fake_http.routes[f"{M1}/a/b/1.0.0/component.json"] = b"not json"
        mirror = next(iter_mirrors([M1]))
        with pytest.raises(FetchError, match="component.json"):
            ManifestFetcher(fake_http, _no_headers).fetch("a/b", "1.0.0", mirror)

    def test_non_object_document(self, fake_http) -> None:
        fake_http.routes[f"{M1}/a/b/1.0.0/component.json"] = "[1, 2]"
        mirror = next(iter_mirrors([M1]))
        with pytest.raises(FetchError, match="JSON object"):
            ManifestFetcher(fake_http, _no_headers).fetch("a/b", "1.0.0", mirror)

    def test_unsupported_scheme(self) -> None:
        from compinstall.utils.net import UrlLibClient

        mirror = next(iter_mirrors(["ftp://m.test"]))
        with pytest.raises(FetchError, match="unsupported URL scheme"):
            ManifestFetcher(UrlLibClient(), _no_headers).fetch("a/b", "1.0.0", mirror)


def test_http_error_reason_unknown_status() -> None:
    err = http_error("https://m.test/x", 599)
    assert err.status == 599
    assert '"Unknown"' in str(err)
