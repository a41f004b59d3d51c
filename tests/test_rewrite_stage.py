"""
Rewrite Stage Tests
===================
"""

import pytest

from emitpipe.pipeline import RewriteStage, Unit

from conftest import make_units


def uppercase_rewriter(unit, sink):
    if unit.source.startswith("@keep"):
        return None
    return unit.source.upper()


def rejecting_rewriter(unit, sink):
    if "forbidden" in unit.source:
        sink.error("forbidden construct")
    return None


class TestRewriteStage:
    """Tests for RewriteStage."""

    @pytest.mark.asyncio
    async def test_no_rewriters_is_identity(self):
        units = make_units("a", "b")
        result = await RewriteStage([]).run(units)
        assert result.units == units
        assert result.diagnostics == ()

    @pytest.mark.asyncio
    async def test_rewriters_replace_sources(self):
        units = make_units("a", "@keep b")
        result = await RewriteStage([uppercase_rewriter]).run(units)

        assert [u.source for u in result.units] == ["A", "@keep b"]
        assert result.rewritten_keys == ["src/unit_0.ts"]
        assert result.units[1] is units[1]

    @pytest.mark.asyncio
    async def test_rewriters_chain_in_order(self):
        def add_suffix(unit, sink):
            return unit.source + "!"

        result = await RewriteStage([add_suffix, uppercase_rewriter]).run(make_units("a"))
        assert result.units[0].source == "A!"

    @pytest.mark.asyncio
    async def test_original_units_untouched(self):
        units = make_units("a")
        await RewriteStage([uppercase_rewriter]).run(units)
        assert units[0].source == "a"

    @pytest.mark.asyncio
    async def test_errors_are_attributed_and_reported(self):
        result = await RewriteStage([rejecting_rewriter]).run(make_units("ok", "forbidden"))

        assert result.has_error
        assert [d.unit_key for d in result.diagnostics] == ["src/unit_1.ts"]

    @pytest.mark.asyncio
    async def test_writes_transformed_files(self, tmp_path):
        stage = RewriteStage(
            [uppercase_rewriter],
            write_transformed_files=True,
            resolve_transformed_path=lambda unit: tmp_path / "transformed" / unit.key,
        )
        result = await stage.run([Unit(key="src/a.ts", source="abc"), Unit(key="src/b.ts", source="@keep")])

        assert result.transformed_paths == [tmp_path / "transformed" / "src/a.ts"]
        assert (tmp_path / "transformed" / "src" / "a.ts").read_text() == "ABC"
        assert not (tmp_path / "transformed" / "src" / "b.ts").exists()

    @pytest.mark.asyncio
    async def test_no_transformed_files_on_error(self, tmp_path):
        def rewrite_and_fail(unit, sink):
            sink.error("nope")
            return "changed"

        stage = RewriteStage(
            [rewrite_and_fail],
            write_transformed_files=True,
            resolve_transformed_path=lambda unit: tmp_path / unit.key,
        )
        result = await stage.run(make_units("a"))

        assert result.has_error
        assert result.transformed_paths == []

    def test_warns_without_transformed_path_resolver(self, caplog):
        RewriteStage([uppercase_rewriter], write_transformed_files=True)
        assert "no transformed-path resolver" in caplog.text
