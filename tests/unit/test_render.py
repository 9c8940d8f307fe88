#!/usr/bin/env python3
"""
Unit tests for the file render cache
"""

import os
import pytest
import time
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from cachefront.errors import RenderError, TemplateNotFound
from cachefront.expiry import Expire
from cachefront.facade import CacheFacade
from cachefront.keys import content_hash
from cachefront.render import FileRenderCache
from cachefront.save_triggers import MaintenanceSweep
from cachefront.store import InMemoryStore


class FakeRenderer:
    """Renders "<file contents>|<variables>" and records calls."""

    def __init__(self, current, output=None):
        self.current = str(current)
        self.output = output
        self.calls = []

    def current_path(self):
        return self.current

    def render(self, file_path, variables, options):
        self.calls.append((file_path, variables, options))
        if self.output is not None:
            return self.output
        return Path(file_path).read_text() + "|" + ",".join(f"{k}={v}" for k, v in sorted(variables.items()))


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def cache(store):
    return CacheFacade(store)


@pytest.fixture
def template(tmp_path):
    path = tmp_path / "page.html"
    path.write_text("<h1>Hi</h1>")
    return path


@pytest.fixture
def renderer(tmp_path):
    return FakeRenderer(tmp_path)


@pytest.fixture
def files(cache, renderer, tmp_path):
    return FileRenderCache(cache, renderer, str(tmp_path))


class TestRenderFile:

    def test_renders_once_then_serves_cache(self, files, renderer, template):
        first = files.render_file("page.html", 3600, variables={"title": "Home"})
        second = files.render_file("page.html", 3600, variables={"title": "Home"})

        assert first == "<h1>Hi</h1>|title=Home"
        assert second == first
        assert len(renderer.calls) == 1
        assert renderer.calls[0][0] == os.path.join(str(template.parent), "page.html")

    def test_entry_stored_as_timestamp_output_pair(self, files, store, template):
        before = time.time()
        files.render_file("page.html")

        created_at, output = store.get("cache.renderFile__page.html")
        assert created_at >= before
        assert output == "<h1>Hi</h1>|"

    def test_custom_cache_name(self, files, store, template):
        files.render_file("page.html", name="blocks")
        assert store.get("cache.blocks__page.html") is not None

    def test_absolute_path(self, files, renderer, template):
        assert files.render_file(str(template)) == "<h1>Hi</h1>|"
        assert files.render_file(str(template)) == "<h1>Hi</h1>|"
        assert len(renderer.calls) == 1

    def test_relative_to_current_path(self, cache, store, tmp_path):
        subdir = tmp_path / "templates"
        subdir.mkdir()
        (subdir / "nav.html").write_text("<nav/>")
        files = FileRenderCache(cache, FakeRenderer(subdir), str(tmp_path))

        assert files.render_file("nav.html") == "<nav/>|"
        assert store.get("cache.renderFile__templates/nav.html") is not None

    def test_source_change_forces_rerender(self, files, renderer, template):
        files.render_file("page.html")

        future = time.time() + 100
        os.utime(template, (future, future))
        template.write_text("<h1>Changed</h1>")
        os.utime(template, (future, future))

        assert files.render_file("page.html") == "<h1>Changed</h1>|"
        assert len(renderer.calls) == 2

    def test_malformed_entry_is_a_miss(self, files, renderer, store, template):
        store.set("cache.renderFile__page.html", "garbage")

        assert files.render_file("page.html") == "<h1>Hi</h1>|"
        assert len(renderer.calls) == 1

    def test_on_save_entries_cleared_by_sweep(self, files, cache, renderer, template):
        files.render_file("page.html", Expire.ON_SAVE)
        files.render_file("page.html", Expire.ON_SAVE)
        assert len(renderer.calls) == 1

        MaintenanceSweep(cache).on_saved()

        files.render_file("page.html", Expire.ON_SAVE)
        assert len(renderer.calls) == 2

    def test_default_expiry_entries_cleared_by_sweep(self, files, cache, renderer, template):
        files.render_file("page.html")
        assert cache.trigger_index.keys() == ["cache.renderFile__page.html"]

        assert MaintenanceSweep(cache).sweep() == 1

        files.render_file("page.html")
        assert len(renderer.calls) == 2

    def test_path_with_spaces_cached_under_safe_key(self, files, renderer, store, tmp_path):
        (tmp_path / "my page.html").write_text("<p/>")

        assert files.render_file("my page.html") == "<p/>|"
        assert files.render_file("my page.html") == "<p/>|"
        assert len(renderer.calls) == 1
        assert store.get("cache.renderFile__" + content_hash("my page.html")) is not None

    def test_inactive_cache_still_renders(self, store, renderer, template, tmp_path):
        files = FileRenderCache(CacheFacade(store, active=False), renderer, str(tmp_path))

        assert files.render_file("page.html") == "<h1>Hi</h1>|"
        assert files.render_file("page.html") == "<h1>Hi</h1>|"
        assert len(renderer.calls) == 2
        assert len(store) == 0


class TestRenderFailures:

    def test_missing_file_returns_false(self, files, renderer):
        assert files.render_file("missing.html", throw_exceptions=False) is False
        assert renderer.calls == []

    def test_missing_file_raises(self, files):
        with pytest.raises(TemplateNotFound):
            files.render_file("missing.html")

    def test_render_failure(self, cache, store, template, tmp_path):
        files = FileRenderCache(cache, FakeRenderer(tmp_path, output=False), str(tmp_path))

        assert files.render_file("page.html", throw_exceptions=False) is False
        with pytest.raises(RenderError):
            files.render_file("page.html")
        assert len(store) == 0
