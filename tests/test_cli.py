import json

from click.testing import CliRunner

from passshare.cli import cli
from passshare.domain.passwords import SYMBOLS


def test_generate_json():
    runner = CliRunner()
    result = runner.invoke(cli, ["generate", "--length", "24", "--no-symbols", "--format", "json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert len(data["password"]) == 24
    assert not any(c in SYMBOLS for c in data["password"])
    assert 0 <= data["strength"]["score"] <= 4


def test_generate_without_classes_is_usage_error():
    runner = CliRunner()
    result = runner.invoke(cli, [
        "generate", "--no-uppercase", "--no-lowercase", "--no-numbers", "--no-symbols",
    ])
    assert result.exit_code == 2
    assert "At least one character type must be selected" in result.output


def test_generate_length_out_of_range():
    runner = CliRunner()
    result = runner.invoke(cli, ["generate", "--length", "7"])
    assert result.exit_code == 2


def test_strength_command():
    runner = CliRunner()
    result = runner.invoke(cli, ["strength", "aaa"])

    assert result.exit_code == 0
    assert result.output.startswith("Weak (0/4)")
    assert "Avoid repeating characters" in result.output


def test_retrieve_rejects_link_without_key():
    runner = CliRunner()
    result = runner.invoke(cli, ["retrieve", "http://localhost:8000/share/V1StGXR8_Z5jdHi6B-myT"])

    assert result.exit_code == 1
    assert "Missing encryption key" in result.output
