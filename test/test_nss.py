from __future__ import annotations

import os
import threading
import time
from pathlib import Path

import pytest

from hostlookup.exceptions import NSSConfigParseError
from hostlookup.util import nss
from hostlookup.util.nss import (
    NSSConfig,
    NSSConfigCache,
    NSSCriterion,
    NSSSource,
    SourceKind,
    make_source,
    parse_nss_conf,
    read_nss_conf,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestParseNSSConf:
    def test_typical(self) -> None:
        conf = parse_nss_conf(
            "# /etc/nsswitch.conf\n"
            "\n"
            "passwd:         files systemd\n"
            "hosts:          files mdns4_minimal [NOTFOUND=return] dns  # comment\n"
            "networks:       files\n"
        )
        assert conf.err is None
        assert conf.database("hosts") == (
            NSSSource("files", SourceKind.files),
            NSSSource(
                "mdns4_minimal",
                SourceKind.mdns,
                (NSSCriterion(False, "notfound", "return"),),
            ),
            NSSSource("dns", SourceKind.dns),
        )
        assert [s.name for s in conf.database("passwd")] == ["files", "systemd"]
        assert conf.database("group") == ()

    def test_criteria(self) -> None:
        conf = parse_nss_conf(
            "hosts: dns [!UNAVAIL=return success=return] files [NotFound=Continue]"
        )
        assert conf.err is None
        dns, files = conf.database("hosts")
        assert dns.criteria == (
            NSSCriterion(True, "unavail", "return"),
            NSSCriterion(False, "success", "return"),
        )
        assert files.criteria == (NSSCriterion(False, "notfound", "continue"),)

    def test_tabs_and_empty_database(self) -> None:
        conf = parse_nss_conf("hosts:\tfiles\t\tdns\nshadow:\n")
        assert conf.err is None
        assert [s.name for s in conf.database("hosts")] == ["files", "dns"]
        assert conf.database("shadow") == ()

    def test_keeps_sources_before_error(self) -> None:
        conf = parse_nss_conf("hosts: files dns\ngarbage\n")
        assert isinstance(conf.err, NSSConfigParseError)
        assert "no colon on line" in str(conf.err)
        assert [s.name for s in conf.database("hosts")] == ["files", "dns"]

    @pytest.mark.parametrize(
        ["text", "message"],
        [
            ("hosts files", "no colon on line"),
            ("hosts: files [notfound=return", "unclosed criterion bracket"),
            ("hosts: files [a=]", "invalid criteria: a="),
            ("hosts: files [notfound]", "invalid criteria: notfound"),
        ],
    )
    def test_errors(self, text: str, message: str) -> None:
        conf = parse_nss_conf(text, "/etc/nsswitch.conf")
        assert isinstance(conf.err, NSSConfigParseError)
        assert conf.err.message == message
        assert conf.err.path == "/etc/nsswitch.conf"

    @pytest.mark.parametrize(
        ["name", "kind"],
        [
            ("files", SourceKind.files),
            ("dns", SourceKind.dns),
            ("myhostname", SourceKind.myhostname),
            ("mdns", SourceKind.mdns),
            ("mdns4_minimal", SourceKind.mdns),
            ("mdns6", SourceKind.mdns),
            ("resolve", SourceKind.other),
            ("nis", SourceKind.other),
            ("Files", SourceKind.other),
        ],
    )
    def test_source_kind(self, name: str, kind: SourceKind) -> None:
        assert make_source(name).kind is kind


class TestStandardCriteria:
    @pytest.mark.parametrize(
        ["text", "standard"],
        [
            ("files", True),
            ("dns", True),
            (
                "dns [success=return notfound=continue unavail=continue "
                "tryagain=continue]",
                True,
            ),
            ("files [notfound=return]", True),
            ("files [notfound=return unavail=continue]", False),
            ("files [unavail=continue notfound=return]", True),
            ("dns [success=continue]", False),
            ("dns [!success=return]", False),
            ("dns [bogus=continue]", False),
            ("files [UNAVAIL=CONTINUE]", True),
        ],
    )
    def test_standard_criteria(self, text: str, standard: bool) -> None:
        conf = parse_nss_conf("hosts: " + text)
        assert conf.err is None
        (source,) = conf.database("hosts")
        assert source.standard_criteria is standard


class TestReadNSSConf:
    def test_missing(self, tmp_path: Path) -> None:
        conf = read_nss_conf(str(tmp_path / "nsswitch.conf"))
        assert isinstance(conf.err, FileNotFoundError)
        assert conf.sources == {}

    def test_read(self, tmp_path: Path) -> None:
        path = tmp_path / "nsswitch.conf"
        path.write_text("hosts: files dns\n")

        conf = read_nss_conf(str(path))
        assert conf.err is None
        assert conf.mtime == os.stat(path).st_mtime
        assert [s.name for s in conf.database("hosts")] == ["files", "dns"]

    def test_parse_error_has_path(self, tmp_path: Path) -> None:
        path = tmp_path / "nsswitch.conf"
        path.write_text("hosts files\n")

        conf = read_nss_conf(str(path))
        assert isinstance(conf.err, NSSConfigParseError)
        assert conf.err.path == str(path)


class TestNSSConfigCache:
    def test_first_get_reads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "nsswitch.conf"
        path.write_text("hosts: dns\n")

        cache = NSSConfigCache(str(path), clock=FakeClock())
        assert [s.name for s in cache.get().database("hosts")] == ["dns"]

    def test_serves_cached_value_within_ttl(self, tmp_path: Path) -> None:
        path = tmp_path / "nsswitch.conf"
        path.write_text("hosts: dns\n")
        clock = FakeClock()
        cache = NSSConfigCache(str(path), ttl=5.0, clock=clock)
        first = cache.get()

        path.write_text("hosts: files\n")
        later = os.stat(path).st_mtime + 10
        os.utime(path, (later, later))
        clock.now += 4.9
        assert cache.get() is first

        clock.now += 0.2
        assert [s.name for s in cache.get().database("hosts")] == ["files"]

    def test_unchanged_mtime_skips_reparse(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "nsswitch.conf"
        path.write_text("hosts: dns\n")
        clock = FakeClock()
        cache = NSSConfigCache(str(path), ttl=5.0, clock=clock)
        first = cache.get()

        calls: list[str] = []
        monkeypatch.setattr(nss, "read_nss_conf", lambda p: calls.append(p))
        clock.now += 60
        assert cache.get() is first
        assert calls == []

    def test_file_appears(self, tmp_path: Path) -> None:
        path = tmp_path / "nsswitch.conf"
        clock = FakeClock()
        cache = NSSConfigCache(str(path), ttl=5.0, clock=clock)
        assert isinstance(cache.get().err, FileNotFoundError)

        path.write_text("hosts: files\n")
        clock.now += 5
        conf = cache.get()
        assert conf.err is None
        assert [s.name for s in conf.database("hosts")] == ["files"]

    def test_set(self, tmp_path: Path) -> None:
        path = tmp_path / "nsswitch.conf"
        path.write_text("hosts: dns\n")
        clock = FakeClock()
        cache = NSSConfigCache(str(path), ttl=5.0, clock=clock)

        fake = parse_nss_conf("hosts: files")
        cache.set(fake, offset=3600)
        clock.now += 3600
        assert cache.get() is fake

        # A stale value is replaced by what's on disk.
        cache.set(fake, offset=-10)
        assert [s.name for s in cache.get().database("hosts")] == ["dns"]

    def test_concurrent_stale_gets_reparse_once(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "nsswitch.conf"
        path.write_text("hosts: files dns\n")
        old = NSSConfig(sources={"hosts": (make_source("dns"),)}, mtime=-1.0)
        cache = NSSConfigCache(str(path), ttl=5.0)
        cache.set(old, offset=-60)

        calls: list[str] = []
        real_read = nss.read_nss_conf

        def slow_read(p: str) -> NSSConfig:
            calls.append(p)
            time.sleep(0.2)
            return real_read(p)

        monkeypatch.setattr(nss, "read_nss_conf", slow_read)

        num_threads = 8
        barrier = threading.Barrier(num_threads)
        results: list[NSSConfig] = []
        results_lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            conf = cache.get()
            with results_lock:
                results.append(conf)

        threads = [threading.Thread(target=worker) for _ in range(num_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert calls == [str(path)]
        assert len(results) == num_threads
        new = [r for r in results if r is not old]
        # Every reader saw a complete value, either before or after the reload.
        for conf in new:
            assert [s.name for s in conf.database("hosts")] == ["files", "dns"]
        assert len({id(r) for r in new}) <= 1


class TestSystemNSS:
    def test_set_and_get(self, system_nss: NSSConfigCache) -> None:
        conf = parse_nss_conf("hosts: files")
        nss.set_system_nss(conf, offset=3600)
        assert nss.get_system_nss() is conf

    @pytest.mark.integration
    def test_real_file(self) -> None:
        conf = NSSConfigCache().get()
        if conf.err is not None:
            assert isinstance(conf.err, (OSError, NSSConfigParseError))
