"""Unit tests for entry document rendering (wasmrun.builder.templates)."""

from __future__ import annotations

import pytest

from wasmrun.builder.templates import render_default_index


class TestRenderDefaultIndex:
    @pytest.mark.unit
    def test_module_script_initialises_app(self):
        html = render_default_index("app.js")
        assert html.startswith("<!DOCTYPE html>")
        assert '<script type="module">import init from "/app.js";init();</script>' in html

    @pytest.mark.unit
    def test_base_url(self):
        html = render_default_index("app.js", base_url="/static/")
        assert 'import init from "/static/app.js"' in html

    @pytest.mark.unit
    def test_title_is_escaped(self):
        html = render_default_index("app.js", title="<Demo>")
        assert "<title>&lt;Demo&gt;</title>" in html

    @pytest.mark.unit
    def test_no_title_by_default(self):
        assert "<title>" not in render_default_index("app.js")
