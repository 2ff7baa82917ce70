"""
Markup cache, providers and component description tests
"""

import asyncio

import pytest

from dskit.lib.components import (
    ManifestError,
    comments_collect,
    components_describe,
    docComment_parse,
    variantIds_read,
)
from dskit.lib.markup import MarkupCache, MarkupError, MarkupProvider
from dskit.lib.previewer import callback_adapt, provider_await


class TestMarkupCache:
    """Lazy loading and eviction"""

    def test_entry_created_lazily(self, project):
        cache = MarkupCache()
        module = project / "ui" / "components" / "button" / "example.py"
        assert module not in cache

        entry = cache.get(module)
        assert module in cache
        assert cache.get(module) is entry
        assert len(cache) == 1

    def test_evict(self, project):
        cache = MarkupCache()
        module = project / "ui" / "components" / "button" / "example.py"
        first = cache.get(module)

        assert cache.evict(module) is True
        assert module not in cache
        assert cache.evict(module) is False
        assert cache.get(module) is not first

    def test_broken_reload_fails_by_default(self, project):
        cache = MarkupCache()
        module = project / "ui" / "components" / "button" / "example.py"
        cache.get(module)

        module.write_text("variants = {\n")
        cache.evict(module)
        with pytest.raises(SyntaxError):
            cache.get(module)

    def test_broken_reload_serves_last_good(self, project):
        cache = MarkupCache(serve_stale=True)
        provider = MarkupProvider(project / "ui", cache)
        module = project / "ui" / "components" / "button" / "example.py"
        assert "Default" in provider.markup_render("button", "default")

        module.write_text("variants = {\n")
        cache.evict(module)
        assert "Default" in provider.markup_render("button", "default")

        module.write_text('variants = {"default": lambda: "<b>fixed</b>"}\n')
        assert provider.markup_render("button", "default") == "<b>fixed</b>"

    def test_loaded_through_file_loader(self, project):
        module = project / "ui" / "components" / "button" / "example.py"
        cache = MarkupCache()
        loaded = cache.get(module).module
        assert loaded.__file__ == str(module.resolve())
        assert loaded.__spec__.origin == str(module.resolve())

        module.write_text('variants = {"default": lambda: "<i>reloaded</i>"}\n')
        cache.evict(module)
        assert cache.get(module).variant_get("default")() == "<i>reloaded</i>"

    def test_modules_not_registered_globally(self, project):
        import sys

        cache = MarkupCache()
        entry = cache.get(project / "ui" / "components" / "button" / "example.py")
        assert entry.module.__name__ not in sys.modules


class TestMarkupProvider:
    """Variant rendering and lookup errors"""

    def test_render_variant(self, project):
        provider = MarkupProvider(project / "ui")
        assert provider.markup_render("button", "brand") == (
            '<button class="slds-button slds-button_brand">Brand</button>'
        )

    @pytest.mark.parametrize("component, variant", [
        ("missing", "default"),
        ("badge", "default"),
        ("button", "missing"),
        ("../button", "default"),
        ("..", "default"),
    ])
    def test_lookup_errors(self, project, component, variant):
        provider = MarkupProvider(project / "ui")
        with pytest.raises(MarkupError):
            provider.markup_render(component, variant)


class TestCallbackProviders:
    """Coroutines exposed through the (error, result) callback convention"""

    @pytest.mark.asyncio
    async def test_success_delivers_result(self):
        calls: list = []
        finished = asyncio.Event()

        async def compute(a, b):
            return a + b

        def done(*args):
            calls.append(args)
            finished.set()

        callback_adapt(compute)(20, 22, done)
        await finished.wait()
        assert calls == [(None, 42)]

    @pytest.mark.asyncio
    async def test_failure_delivers_error_once(self):
        calls: list = []
        finished = asyncio.Event()
        error = MarkupError("unknown variant")

        async def compute():
            raise error

        def done(*args):
            calls.append(args)
            finished.set()

        callback_adapt(compute)(done)
        await finished.wait()
        await asyncio.sleep(0)
        assert len(calls) == 1
        assert calls[0][0] is error

    @pytest.mark.asyncio
    async def test_provider_await_propagates_error(self):
        error = OSError("permission denied")

        async def compute():
            raise error

        with pytest.raises(OSError) as excinfo:
            await provider_await(callback_adapt(compute))
        assert excinfo.value is error

    @pytest.mark.asyncio
    async def test_markup_through_callbacks(self, project):
        provider = MarkupProvider(project / "ui")
        markup_fetch = callback_adapt(provider.markup_get)
        markup = await provider_await(markup_fetch, "button", "default")
        assert markup == '<button class="slds-button">Default</button>'


class TestComments:
    """Documentation comments from the style sources"""

    def test_collect(self, project):
        comments = comments_collect(project / "ui")
        assert comments.startswith("/** Badges label things. */")
        assert "@selector .slds-button" in comments

    def test_no_sources(self, tmp_path):
        assert comments_collect(tmp_path) == ""

    def test_parse(self):
        parsed = docComment_parse("/**\n * Buttons.\n * @selector .a\n * @selector .b\n * @summary Click\n */")
        assert parsed == {
            "description": "Buttons.",
            "annotations": {"selector": [".a", ".b"], "summary": "Click"},
        }


class TestComponentDescription:
    """Structured description shipped as ui.json"""

    @pytest.mark.asyncio
    async def test_describe(self, project):
        components = await components_describe(project / "ui")
        assert [c["id"] for c in components] == ["badge", "button"]
        assert components[0] == {
            "id": "badge",
            "path": "components/badge",
            "description": "Badges label things.",
            "annotations": {},
            "tokens": [],
            "variants": [],
        }
        assert components[1]["description"] == "Buttons trigger an action."
        assert components[1]["annotations"]["restrict"] == "button"

    @pytest.mark.asyncio
    async def test_empty_tree_is_valid(self, tmp_path):
        assert await components_describe(tmp_path) == []

    @pytest.mark.asyncio
    async def test_bad_token_file(self, project):
        (project / "ui" / "components" / "button" / "tokens" / "button.yml").write_text("props: [\n")
        with pytest.raises(ManifestError):
            await components_describe(project / "ui")

    def test_variants_read_without_executing(self, tmp_path):
        module = tmp_path / "example.py"
        module.write_text('raise SystemExit(1)\nvariants = {"a": None, "b": None}\n')
        assert variantIds_read(module) == ["a", "b"]
