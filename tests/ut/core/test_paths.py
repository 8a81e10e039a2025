"""包身份与路径计算测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from compinstall.core.exceptions import InstallError, InvalidNameError, ValidationError
from compinstall.core.pkg.paths import (
    dirname_for,
    join_path,
    normalize_version,
    slug_for,
    split_slug,
    strip_mirror,
    url_for,
    validate_name,
)


class TestIdentity:
    def test_slug(self) -> None:
        assert slug_for("component/tip", "0.3.0") == "component/tip@0.3.0"

    @pytest.mark.parametrize("version, expected", [
        ("*", "master"),
        ("1.0.0", "1.0.0"),
        ("master", "master"),
    ])
    def test_normalize_version(self, version: str, expected: str) -> None:
        assert normalize_version(version) == expected

    def test_validate_name(self) -> None:
        validate_name("component/tip")
        with pytest.raises(InvalidNameError, match='invalid component name "tip"'):
            validate_name("tip")

    @pytest.mark.parametrize("name", ["/x", "a/", "a/b/c", "/"])
    def test_validate_name_requires_two_segments(self, name: str) -> None:
        with pytest.raises(InvalidNameError):
            validate_name(name)

    @pytest.mark.parametrize("spec, expected", [
        ("component/tip@0.3.0", ("component/tip", "0.3.0")),
        ("component/tip", ("component/tip", "master")),
        ("component/tip@*", ("component/tip", "master")),
        ("component/tip@", ("component/tip", "master")),
    ])
    def test_split_slug(self, spec: str, expected: tuple[str, str]) -> None:
        assert split_slug(spec) == expected

    def test_split_slug_empty(self) -> None:
        with pytest.raises(ValidationError, match="pkg required"):
            split_slug("")


class TestPaths:
    def test_dirname(self, tmp_path: Path) -> None:
        assert dirname_for("component/tip", tmp_path) == tmp_path.resolve() / "component-tip"

    def test_dirname_relative_dest(self) -> None:
        assert dirname_for("component/tip", "components") == Path("components/component-tip").resolve()

    def test_dirname_lowercase(self, tmp_path: Path) -> None:
        assert dirname_for("Component/Tip", tmp_path).name == "component-tip"

    def test_join(self, tmp_path: Path) -> None:
        path = join_path("component/tip", tmp_path, "lib/index.js")
        assert path == tmp_path.resolve() / "component-tip" / "lib" / "index.js"

    def test_join_normalizes_inner_dots(self, tmp_path: Path) -> None:
        path = join_path("component/tip", tmp_path, "lib/../index.js")
        assert path == tmp_path.resolve() / "component-tip" / "index.js"

    @pytest.mark.parametrize("relative", ["../../escaped.js", "../component-other/x.js", "/etc/x", ".", "lib/../.."])
    def test_join_rejects_escape(self, tmp_path: Path, relative: str) -> None:
        with pytest.raises(InstallError, match="escapes package directory"):
            join_path("component/tip", tmp_path, relative)

    def test_pure_and_deterministic(self, tmp_path: Path) -> None:
        first = [dirname_for("a/b", tmp_path), join_path("a/b", tmp_path, "x.js")]
        dirname_for("c/d", tmp_path)
        second = [dirname_for("a/b", tmp_path), join_path("a/b", tmp_path, "x.js")]
        assert first == second
        assert not (tmp_path / "a-b").exists()


class TestUrls:
    def test_url_for(self) -> None:
        assert (
            url_for("https://raw.github.com", "component/tip", "0.3.0", "component.json")
            == "https://raw.github.com/component/tip/0.3.0/component.json"
        )

    def test_url_keeps_name_case(self) -> None:
        assert url_for("https://m.test", "Owner/Name", "1.0", "a.js") == "https://m.test/Owner/Name/1.0/a.js"

    @pytest.mark.parametrize("mirror", ["https://m.test", "https://m.test/", "https://m.test//"])
    def test_strip_mirror(self, mirror: str) -> None:
        assert strip_mirror(mirror) == "https://m.test"
