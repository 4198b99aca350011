from __future__ import annotations

import json
from pathlib import Path

from notesys.cli import main
from notesys.notes.system import BLOCK_HEADER_MARKDOWN

from .utils import logger_to_stderr, write_config


def _run(config_file: Path, *args: str) -> int:
    with logger_to_stderr():
        return main(["--config", str(config_file), *args])


def test_create_list_show_delete(capsys, tmp_path):
    config_file = write_config(tmp_path)

    assert _run(config_file, "create", "todo", "--content", "- buy milk") == 0
    assert _run(config_file, "list") == 0
    listed = capsys.readouterr().out.splitlines()
    assert listed == ["scratch", "inbox", "daily journal", "todo"]

    assert _run(config_file, "show", "todo") == 0
    assert capsys.readouterr().out == BLOCK_HEADER_MARKDOWN + "- buy milk\n"

    assert _run(config_file, "delete", "todo") == 0
    assert _run(config_file, "show", "todo") == 1
    captured = capsys.readouterr()
    assert "Note 'todo' does not exist" in captured.err


def test_list_can_include_system_notes(capsys, tmp_path):
    config_file = write_config(tmp_path)

    assert _run(config_file, "list", "--system") == 0

    assert "system:help" in capsys.readouterr().out.splitlines()


def test_create_existing_note_only_warns(capsys, tmp_path):
    config_file = write_config(tmp_path)

    assert _run(config_file, "create", "inbox") == 0

    assert "already exists" in capsys.readouterr().err


def test_protected_notes_exit_with_error(capsys, tmp_path):
    config_file = write_config(tmp_path)

    assert _run(config_file, "delete", "scratch") == 1
    assert _run(config_file, "rename", "system:help", "mine") == 1

    captured = capsys.readouterr()
    assert "ProtectedNoteError" in captured.err


def test_save_from_file_and_rename(capsys, tmp_path):
    config_file = write_config(tmp_path)
    source = tmp_path / "draft.txt"
    source.write_text("line one\nline two", encoding="utf-8")

    assert _run(config_file, "save", "draft", "--file", str(source)) == 0
    assert _run(config_file, "rename", "draft", "final") == 0
    assert _run(config_file, "show", "final") == 0

    assert capsys.readouterr().out == BLOCK_HEADER_MARKDOWN + "line one\nline two\n"


def test_save_requires_exactly_one_source(capsys, tmp_path):
    config_file = write_config(tmp_path)

    assert _run(config_file, "save", "draft") == 1

    assert "exactly one of --content or --file" in capsys.readouterr().err


def test_migrate_to_directory_and_back(capsys, tmp_path):
    notes_dir = tmp_path / "notes"
    config_file = write_config(tmp_path, default_directory=notes_dir)

    assert _run(config_file, "migrate", "to-dir", "--dry-run") == 0
    preview = json.loads(capsys.readouterr().out)
    assert preview["dry_run"] is True
    assert preview["counts"]["create"] == 3
    assert list(notes_dir.iterdir()) == []

    assert _run(config_file, "migrate", "to-dir") == 0
    report = json.loads(capsys.readouterr().out)
    assert report["dry_run"] is False
    assert sorted(path.name for path in notes_dir.iterdir()) == [
        "daily journal.edna.txt",
        "inbox.edna.txt",
        "scratch.edna.txt",
    ]

    assert _run(config_file, "status") == 0
    assert f"directory {notes_dir.resolve()}" in capsys.readouterr().err

    assert _run(config_file, "migrate", "to-kv") == 0
    assert json.loads(capsys.readouterr().out)["counts"]["create"] == 3
    assert list(notes_dir.iterdir()) == []


def test_migrate_to_directory_needs_a_target(capsys, tmp_path):
    config_file = write_config(tmp_path)

    assert _run(config_file, "migrate", "to-dir") == 1

    assert "No directory given" in capsys.readouterr().err


def test_encrypt_and_decrypt_directory_notes(capsys, monkeypatch, tmp_path):
    monkeypatch.setenv("NOTESYS_TEST_PASSWORD", "s3cret")
    notes_dir = tmp_path / "notes"
    config_file = write_config(tmp_path, password="env:NOTESYS_TEST_PASSWORD")

    assert _run(config_file, "migrate", "to-dir", str(notes_dir)) == 0
    assert _run(config_file, "encrypt") == 0
    assert (notes_dir / "inbox.encr.edna.txt").exists()
    assert "s3cret" not in capsys.readouterr().err

    assert _run(config_file, "show", "inbox") == 0
    assert "# Inbox" in capsys.readouterr().out

    assert _run(config_file, "decrypt") == 0
    assert "Decrypted 3 notes" in capsys.readouterr().err
    assert (notes_dir / "inbox.edna.txt").exists()


def test_encrypt_refused_for_key_value_store(capsys, tmp_path):
    config_file = write_config(tmp_path, password="pw")

    assert _run(config_file, "encrypt") == 1

    assert "move them to a directory first" in capsys.readouterr().err


def test_unset_password_variable_fails(capsys, monkeypatch, tmp_path):
    monkeypatch.delenv("NOTESYS_MISSING_PASSWORD", raising=False)
    config_file = write_config(tmp_path, password="env:NOTESYS_MISSING_PASSWORD")

    assert _run(config_file, "list") == 1

    assert "Cannot resolve encryption password" in capsys.readouterr().err


def test_preload_reports_started_reads(capsys, tmp_path):
    notes_dir = tmp_path / "notes"
    config_file = write_config(tmp_path)

    assert _run(config_file, "migrate", "to-dir", str(notes_dir)) == 0
    assert _run(config_file, "preload") == 0

    assert "Pre-loaded 3 notes" in capsys.readouterr().err


def test_show_of_undecodable_note_file_fails(capsys, tmp_path):
    notes_dir = tmp_path / "notes"
    config_file = write_config(tmp_path)

    assert _run(config_file, "migrate", "to-dir", str(notes_dir)) == 0
    (notes_dir / "bin.edna.txt").write_bytes(b"\xff\xfe caf\xe9")
    capsys.readouterr()

    assert _run(config_file, "show", "bin") == 1

    err = capsys.readouterr().err
    assert "InvalidContentError" in err
    assert "bin.edna.txt" in err
