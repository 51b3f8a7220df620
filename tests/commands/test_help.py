"""Tests for command help text."""

import pytest
from click.testing import CliRunner

from buckal.cli import cli


@pytest.mark.parametrize(
    ("args", "expected"),
    [
        (["flush", "--help"], ["--no-merge", "--separate", "--metadata", "--examples"]),
        (["diff", "--help"], ["--metadata"]),
        (["cells", "--help"], ["list", "resolve", "rewrite"]),
        (["cells", "rewrite", "--help"], ["--from"]),
        (["bundles", "--help"], ["init", "update"]),
        (["bundles", "init", "--help"], ["--no-package"]),
    ],
)
def test_help(cli_runner: CliRunner, args: list[str], expected: list[str]) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0
    for text in expected:
        assert text in result.output
