"""
Contract tests for the polyexec-run command line.

Exit codes: 0 success, 1 code failed, 2 bad request, 3 infrastructure,
4 cancelled or timed out.
"""

import importlib
import io
import json

import pytest

from polyexec.application.services import KernelRegistry
from polyexec.infrastructure.config import get_settings
from polyexec.infrastructure.dependencies import build_gateway
from polyexec.tests.fixtures import ScriptedKernel

cli = importlib.import_module("polyexec.interfaces.cli.main")


@pytest.fixture(autouse=True)
def scripted_gateway(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("POLYEXEC_EXECUTION_MODE", raising=False)
    get_settings.cache_clear()

    def build(settings):
        registry = KernelRegistry()
        registry.register("scripted", ScriptedKernel)
        return build_gateway(settings, registry=registry)

    monkeypatch.setattr(cli, "build_gateway", build)
    yield
    get_settings.cache_clear()


def _source(tmp_path, code):
    path = tmp_path / "snippet.txt"
    path.write_text(code)
    return str(path)


@pytest.mark.contract
class TestCli:
    def test_prints_transcript(self, tmp_path, capsys):
        exit_code = cli.main(["scripted", _source(tmp_path, "out:hello\nvalue:1")])

        assert exit_code == cli.EXIT_OK
        assert capsys.readouterr().out == "hello\n1\n"

    def test_reads_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("out:from-stdin"))

        assert cli.main(["scripted"]) == cli.EXIT_OK
        assert capsys.readouterr().out == "from-stdin\n"

    def test_code_failure(self, tmp_path, capsys):
        exit_code = cli.main(["scripted", _source(tmp_path, "fail:boom")])

        assert exit_code == cli.EXIT_EXECUTION_FAILED
        assert capsys.readouterr().out == "Error: boom\n"

    def test_unsupported_language(self, tmp_path, capsys):
        exit_code = cli.main(["cobol", _source(tmp_path, "x")])

        assert exit_code == cli.EXIT_REQUEST_ERROR
        assert "cobol" in capsys.readouterr().err

    def test_missing_file(self, tmp_path):
        assert cli.main(["scripted", str(tmp_path / "missing.txt")]) == cli.EXIT_REQUEST_ERROR

    def test_timeout(self, tmp_path):
        exit_code = cli.main(["scripted", _source(tmp_path, "wait"), "--timeout", "0.05"])

        assert exit_code == cli.EXIT_CANCELLED

    def test_json_output(self, tmp_path, capsys):
        cli.main(["scripted", _source(tmp_path, "out:hi"), "--json"])

        assert json.loads(capsys.readouterr().out) == {
            "transcript": "hi\n",
            "succeeded": True,
            "error_detail": None,
            "error_kind": "none",
        }

    def test_mode_flag(self):
        args = cli.parse_args(["python", "-m", "container", "-t", "5"])

        assert args.mode == "container"
        assert args.timeout == 5.0
        assert args.source == "-"
