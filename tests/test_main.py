"""Tests for the command line driver."""
import json
import logging

import pytest
import yaml

from vocab_sync.main import format_error_chain, main, parse_args


@pytest.fixture(autouse=True)
def restore_logging():
    """Drop handlers installed by main() so later tests log normally."""
    logger = logging.getLogger("vocab_sync")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


@pytest.fixture
def cli_env(test_config, monkeypatch):
    """Source directories under the test base dir."""
    base = test_config.base_dir
    stories = base / "stories"
    stories.mkdir()
    (stories / "frankenstein.yml").write_text(
        yaml.safe_dump(
            {
                "episodes": [
                    {
                        "title": "Letter 1",
                        "scenes": [
                            {"title": "Arrival", "definitions": [{"expression": "resilient"}]}
                        ],
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    cache = base / "cache"
    cache.mkdir()
    (cache / "resilient.json").write_text(json.dumps({"senses": ["tough"]}), encoding="utf-8")

    monkeypatch.setattr(test_config, "story_dirs", [stories])
    monkeypatch.setattr(test_config, "dictionary_cache_dir", cache)
    return test_config


class TestParseArgs:
    def test_import_flags(self):
        args = parse_args(["--database-path", "x.db", "import", "--dry-run", "--refresh-existing"])

        assert args.command == "import"
        assert args.dry_run and args.refresh_existing
        assert args.database_path == "x.db"

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestMain:
    def test_import_prints_records_and_summary(self, cli_env, capsys):
        code = main(["import"])

        out = capsys.readouterr().out
        assert code == 0
        assert '  [NEW]  "resilient" (resilient)' in out
        assert "Notes: 1 new, 0 skipped, 0 updated" in out
        assert "Dictionary: 1 new, 0 skipped, 0 updated" in out

    def test_dry_run_leaves_database_empty(self, cli_env, capsys):
        main(["import", "--dry-run"])
        main(["import"])

        out = capsys.readouterr().out
        assert out.count("Notes: 1 new") == 2

    def test_export_writes_yaml(self, cli_env, tmp_path, capsys):
        main(["import"])

        code = main(["export", "--output-dir", str(tmp_path / "backup")])

        assert code == 0
        notes = yaml.safe_load((tmp_path / "backup" / "notes.yml").read_text(encoding="utf-8"))
        assert notes[0]["usage"] == "resilient"

    def test_invalid_source_exits_with_error_chain(self, cli_env, capsys):
        (cli_env.base_dir / "stories" / "broken.yml").write_text("- not a mapping\n", encoding="utf-8")

        code = main(["import"])

        assert code == 1
        err = capsys.readouterr().err
        assert "error: [SOURCE_INVALID]" in err
        assert "broken.yml" in err


    def test_directory_as_database_path_is_a_config_error(self, cli_env, capsys):
        code = main(["--database-path", str(cli_env.base_dir), "import"])

        assert code == 1
        assert "error: [CONFIG_MISSING] Database path must name a file" in capsys.readouterr().err


class TestErrorChain:
    def test_causes_are_joined(self):
        try:
            try:
                raise ValueError("disk full")
            except ValueError as e:
                raise RuntimeError("write failed") from e
        except RuntimeError as outer:
            assert format_error_chain(outer) == "write failed <- disk full"
