"""Tests for the CLI runners with a fake-backed engine."""

import asyncio
from unittest.mock import patch

from hydrodoc.main import run, run_batch

from conftest import FakeCompletion, MATCHING_INPUT


class TestRun:
    def test_completes_and_writes_output(self, engine, mock_config, tmp_path, capsys):
        mock_config["output_dir"] = str(tmp_path)

        state = asyncio.run(run("", engine=engine))

        assert state["status"] == "completed"
        assert (tmp_path / f"{state['session_id']}.md").exists()
        assert "Output written to" in capsys.readouterr().out

    def test_auto_approve_resumes_review(self, tools, engine, mock_config, tmp_path):
        mock_config["output_dir"] = str(tmp_path)
        tools.completion = FakeCompletion(draft="Unquoted draft.")

        state = asyncio.run(run(MATCHING_INPUT, auto_approve=True, engine=engine))

        assert state["status"] == "completed"
        assert (tmp_path / f"{state['session_id']}.md").read_bytes() == b"Unquoted draft."

    @patch("sys.stdin")
    @patch("builtins.input", return_value="n")
    def test_rejected_review_uses_typed_content(self, _input, mock_stdin, tools, engine, mock_config, tmp_path):
        mock_config["output_dir"] = str(tmp_path)
        mock_stdin.read.return_value = "Hand-written replacement.\n"
        tools.completion = FakeCompletion(draft="Unquoted draft.")

        state = asyncio.run(run(MATCHING_INPUT, engine=engine))

        assert state["document_content"] == "Hand-written replacement."
        assert engine.fetch_artifact(state["session_id"]) == b"Hand-written replacement."

    def test_failure_returns_none(self, tools, engine, capsys):
        tools.completion = FakeCompletion(error=RuntimeError("boom"))

        assert asyncio.run(run(MATCHING_INPUT, engine=engine)) is None
        assert "Error: boom" in capsys.readouterr().err


class TestRunBatch:
    def test_paused_without_auto_approve(self, tools, engine):
        tools.completion = FakeCompletion(draft="Unquoted draft.")

        state = asyncio.run(run_batch(MATCHING_INPUT, engine=engine))

        assert state["status"] == "reviewing"
        assert not engine.artifacts.exists(state["session_id"])

    def test_auto_approve_completes(self, tools, engine, mock_config, tmp_path):
        mock_config["output_dir"] = str(tmp_path)
        tools.completion = FakeCompletion(draft="Unquoted draft.")

        state = asyncio.run(run_batch(MATCHING_INPUT, auto_approve=True, engine=engine))

        assert state["status"] == "completed"
        assert engine.fetch_artifact(state["session_id"]) == b"Unquoted draft."
