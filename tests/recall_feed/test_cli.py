"""Tests for the command-line entry point."""

import json

import pytest

from src.recall_feed import cli
from src.recall_feed.cache import TTLCache
from src.recall_feed.store import SQLiteStore


@pytest.fixture
def seeded_db(tmp_path, make_record):
    db_path = tmp_path / "cache.db"
    cache = TTLCache(SQLiteStore(db_path))
    cache.write(
        "recall_feed_cache",
        [make_record(product_name="Acme Peanut Butter", brand="Acme", recall_number="F-0123-2024")],
    )
    return db_path


def test_match_command_reports_recall(seeded_db, tmp_path, capsys):
    code = cli.main(["--config", str(tmp_path / "none.yaml"), "--cache-db", str(seeded_db), "match", "Acme Peanut Butter Jar", "--brand", "Acme"])

    out = capsys.readouterr().out
    assert code == 2
    assert "FOOD RECALL ALERT" in out
    assert "F-0123-2024" in out


def test_match_command_json_output(seeded_db, tmp_path, capsys):
    code = cli.main(["--config", str(tmp_path / "none.yaml"), "--cache-db", str(seeded_db), "match", "Acme Peanut Butter", "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert code == 2
    assert payload["recall_number"] == "F-0123-2024"
    assert payload["official_link"].startswith("https://www.fda.gov/")


def test_match_command_without_hit(seeded_db, tmp_path, capsys):
    code = cli.main(["--config", str(tmp_path / "none.yaml"), "--cache-db", str(seeded_db), "match", "Sparkling Water"])

    assert code == 0
    assert "No recall match found" in capsys.readouterr().out


def test_status_and_clear(seeded_db, tmp_path, capsys):
    args = ["--config", str(tmp_path / "none.yaml"), "--cache-db", str(seeded_db)]

    assert cli.main(args + ["status"]) == 0
    assert "fresh" in capsys.readouterr().out

    assert cli.main(args + ["clear"]) == 0
    capsys.readouterr()

    assert cli.main(args + ["status"]) == 0
    assert "No cached recall data" in capsys.readouterr().out
