"""Tests for the evaluate_rules command line entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from scripts.evaluate_rules import main
from services.rule_repository import YamlFileRuleRepository


@pytest.fixture
def rules_file(tmp_path: Path, sample_rules) -> Path:
    path = tmp_path / "rules.yaml"
    YamlFileRuleRepository(path).save_rules(sample_rules)
    return path


def test_json_output_for_every_sample_profile(rules_file: Path, capsys) -> None:
    assert main(["--rules", str(rules_file), "--json", "--log-level", "WARNING"]) == 0

    results = {item["profile"]: item for item in json.loads(capsys.readouterr().out)}
    assert set(results) == {"user1", "user2", "user3", "user4", "user5"}
    assert results["user1"]["variant"] == "default"
    assert results["user1"]["rule_id"] is None
    assert results["user2"]["variant"] == "premium"
    assert results["user3"]["variant"] == "mobile_optimized"
    assert results["user4"]["variant"] == "high_value_customer"
    assert results["user4"]["title"] == "Thank You, Valued Customer!"


def test_text_output_for_selected_profile(rules_file: Path, capsys) -> None:
    assert main(["--rules", str(rules_file), "--profile", "user3", "--log-level", "WARNING"]) == 0

    out = capsys.readouterr().out
    assert "3 rule(s) loaded" in out
    assert "user3: mobile_optimized (Mobile)" in out
    assert "user1" not in out


def test_unknown_profile_exits_with_error(rules_file: Path, capsys) -> None:
    assert main(["--rules", str(rules_file), "--profile", "ghost", "--log-level", "WARNING"]) == 1
    assert "Unknown profile: ghost" in capsys.readouterr().err
