"""Tests for CLI interface."""

import json
from pathlib import Path

import pytest

from redeye_compiler.cli import run_cli


@pytest.fixture
def fixtures_path():
    return Path(__file__).parent / "fixtures" / "go_sources"


class TestCLI:
    def given_source(self, fixtures_path, tmp_path, name, *options):
        self.source = fixtures_path / name
        self.target = tmp_path / "out"
        self.args = [str(self.source), str(self.target), *options]

    def given_no_args(self):
        self.args = []

    def when_cli_is_run(self, capsys):
        self.exit_code = run_cli(self.args)
        self.captured = capsys.readouterr()

    def then_exit_code_is(self, code):
        assert self.exit_code == code

    def then_exit_code_is_nonzero(self):
        assert self.exit_code != 0

    def then_stdout_is_json_summary(self):
        self.output = json.loads(self.captured.out)
        assert self.output["source"] == str(self.source)
        assert self.output["output"] == str(self.target / self.source.name)

    def then_output_file_exists(self):
        assert (self.target / self.source.name).exists()

    def then_output_file_is_missing(self):
        assert not (self.target / self.source.name).exists()

    def then_stderr_mentions(self, text):
        assert text in self.captured.err

    def test_compiles_file(self, fixtures_path, tmp_path, capsys):
        """CLI writes the output file and prints a JSON summary."""
        self.given_source(fixtures_path, tmp_path, "double_quad.go")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(0)
        self.then_stdout_is_json_summary()
        self.then_output_file_exists()
        assert [f["name"] for f in self.output["functions"]] == ["double", "quad"]

    def test_string_encoded_marshaling(self, fixtures_path, tmp_path, capsys):
        """The marshaling strategy is selectable."""
        self.given_source(
            fixtures_path, tmp_path, "strings_only.go", "--marshaling", "string-encoded"
        )
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(0)
        self.then_stdout_is_json_summary()
        assert self.output["marshaling"] == "string-encoded"
        assert self.output["imports_added"] == ["fmt", "strings"]

    def test_compile_error(self, fixtures_path, tmp_path, capsys):
        """A compile error exits 1, reports on stderr and writes nothing."""
        self.given_source(fixtures_path, tmp_path, "unterminated.go")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(1)
        self.then_stderr_mentions("No closing brace for broken")
        self.then_output_file_is_missing()

    def test_missing_source(self, tmp_path, capsys):
        """An unreadable source exits 1."""
        self.args = [str(tmp_path / "missing.go"), str(tmp_path / "out")]
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(1)
        self.then_stderr_mentions("Error:")

    def test_invalid_separator(self, fixtures_path, tmp_path, capsys):
        """An unusable separator is a configuration error."""
        self.given_source(fixtures_path, tmp_path, "fib.go", "--separator", "%")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(2)
        self.then_output_file_is_missing()

    def test_missing_args(self, capsys):
        """CLI returns non-zero and prints usage without arguments."""
        self.given_no_args()
        self.when_cli_is_run(capsys)
        self.then_exit_code_is_nonzero()
        self.then_stderr_mentions("usage")

    def test_source_not_utf8(self, tmp_path, capsys):
        """A source that is not UTF-8 exits 1 with a message, not a traceback."""
        source = tmp_path / "bad.go"
        source.write_bytes(b"package main\n\n// \xff\xfe\n")
        self.args = [str(source), str(tmp_path / "out")]
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(1)
        self.then_stderr_mentions("not valid UTF-8")
        assert not (tmp_path / "out").exists()
