"""Tests for report rendering."""

import platform

import pytest
from loguru import logger

from codon_profiler import Profiler, format_bytes

from _fakes import FakeClock, FakeMemoryReader


def run_profiler(**options) -> Profiler:
    clock = FakeClock()
    profiler = Profiler(
        clock=clock,
        memory_reader=FakeMemoryReader([(2048, 3_000_000)]),
        **options,
    )

    def loop():
        profiler.mark_memory_usage("start")
        clock.advance(0.0025)
        profiler.checkpoint("mid")
        clock.advance(0.0025)

    profiler.register("loop", loop, iterations=10)
    profiler.register("plain", lambda: clock.advance(0.001), iterations=2)
    return profiler.run()


# ---------------------------------------------------------------------------
# format_bytes
# ---------------------------------------------------------------------------

class TestFormatBytes:
    @pytest.mark.parametrize(
        "size,expected",
        [
            (500, "500B"),
            (0, "0B"),
            (1023, "1023B"),
            (1024, "1 KB"),
            (2048, "2 KB"),
            (1536.0, "2 KB"),
            (3_000_000, "3 MB"),
            (1024**2, "1 MB"),
            (1023.6, "1 KB"),
            (1023.4, "1023B"),
            (1024**2 - 1, "1 MB"),
        ],
    )
    def test_units(self, size, expected):
        assert format_bytes(size) == expected


# ---------------------------------------------------------------------------
# render
# ---------------------------------------------------------------------------

class TestRender:
    def test_header(self):
        profiler = run_profiler()
        text = profiler.render()
        lines = text.splitlines()

        assert lines[0] == f"Tests started at: {profiler.last_run.started_at.isoformat(timespec='seconds')}"
        assert lines[1] == "Total iterations: 12"
        assert lines[2] == f"Python version: {platform.python_version()}"

    def test_render_before_run(self):
        text = Profiler(clock=FakeClock()).render()
        assert text.startswith("Tests started at: never\nTotal iterations: 0\n")

    def test_test_block(self):
        text = run_profiler().render()

        assert f"{'loop':>20}  {'Iterations: 10':>20}  \n" in text
        assert "Timers:\n" in text
        assert "              total        0.005000000000\n" in text
        assert "Checkpoints:\n" in text
        assert "                mid        0.002500000000\n" in text

    def test_sections_omitted_when_empty(self):
        text = run_profiler().render()
        plain_block = text.split(f"{'plain':>20}")[1]

        assert "Timers:" in plain_block
        assert "Checkpoints:" not in plain_block
        assert "Memory Usage:" not in plain_block

    def test_memory_human_units(self):
        text = run_profiler().render()
        assert "Memory Usage:" in text
        assert "2 KB" in text
        assert "3 MB" in text

    def test_memory_raw_bytes(self):
        text = run_profiler(format_memory_usage=False).render()
        assert "2048" in text
        assert "3000000" in text
        assert "KB" not in text
        assert "MB" not in text

    def test_html_wraps_and_breaks_lines(self):
        text = run_profiler().render(html=True)

        assert text.startswith('<pre class="benchmarkResults">')
        assert text.endswith("</pre>")
        assert "Timers:<br />\n" in text

    def test_html_escapes_names(self):
        profiler = Profiler(clock=FakeClock())
        profiler.register("<script>", lambda: None).run()

        text = profiler.render(html=True)
        assert "&lt;script&gt;" in text
        assert "<script>" not in text

    def test_render_does_not_mutate_results(self):
        profiler = run_profiler()
        before = profiler.get_results()

        first = profiler.render()
        profiler.render(html=True)
        second = profiler.render()

        assert first == second
        assert profiler.get_results() == before
        assert list(before["loop"].timers)[-1] == "total"


class TestShowResults:
    def test_return_string(self, capsys):
        profiler = run_profiler()
        text = profiler.show_results(return_string=True)

        assert text == profiler.render()
        assert capsys.readouterr().out == ""

    def test_prints_and_returns_profiler(self, capsys):
        profiler = run_profiler()
        returned = profiler.show_results()

        assert returned is profiler
        assert capsys.readouterr().out == profiler.render()

    def test_html_flag(self):
        profiler = run_profiler()
        assert profiler.show_results(html=True, return_string=True) == profiler.render(html=True)

    def test_log_results_emits_every_line(self):
        profiler = run_profiler()
        messages = []
        handler_id = logger.add(messages.append, format="{message}")
        try:
            profiler.log_results()
        finally:
            logger.remove(handler_id)

        logged = [m.rstrip("\n") for m in messages]
        assert logged == profiler.render().splitlines()
