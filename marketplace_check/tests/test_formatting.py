"""Tests for canonical marketplace formatting."""

from __future__ import annotations

import json

from marketplace_check.formatting import format_registry


class TestFormatRegistry:
    """Tests for format_registry."""

    def test_sorts_plugins_by_name(self) -> None:
        doc = {
            "name": "demo",
            "plugins": [{"name": "zeta", "source": "./z"}, {"name": "alpha", "source": "./a"}],
        }
        output = json.loads(format_registry(doc))
        assert [p["name"] for p in output["plugins"]] == ["alpha", "zeta"]

    def test_keeps_key_order_and_unicode(self) -> None:
        doc = {"owner": {"name": "Zoë"}, "name": "demo", "plugins": []}
        text = format_registry(doc)
        assert text.index('"owner"') < text.index('"name": "demo"')
        assert "Zoë" in text
        assert text.endswith("}\n")

    def test_nameless_entries_sort_last(self) -> None:
        doc = {"plugins": [{"source": "./x"}, {"name": "b"}, "junk", {"name": "a"}]}
        plugins = json.loads(format_registry(doc))["plugins"]
        assert plugins[:2] == [{"name": "a"}, {"name": "b"}]
        assert plugins[2:] == [{"source": "./x"}, "junk"]

    def test_second_pass_is_identical(self) -> None:
        """Formatting already formatted output changes nothing."""
        doc = {
            "name": "demo",
            "owner": {"name": "x"},
            "plugins": [
                {"name": "ext", "source": "./ext", "dependencies": ["core"]},
                {"name": "core", "source": "./core"},
            ],
        }
        once = format_registry(doc)
        assert format_registry(json.loads(once)) == once

    def test_does_not_mutate_input(self) -> None:
        plugins = [{"name": "b"}, {"name": "a"}]
        doc = {"plugins": plugins}
        format_registry(doc)
        assert [p["name"] for p in doc["plugins"]] == ["b", "a"]
