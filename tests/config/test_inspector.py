from __future__ import annotations

from pathlib import Path

from notesys.config.inspector import check_config, explain_config


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_check_config_ok_without_warnings(tmp_path: Path) -> None:
    path = _write(tmp_path, '[encryption]\npassword = "env:NOTESYS_PASSWORD"\n')

    result, exit_code, config = check_config(path)

    assert exit_code == 0
    assert result["status"] == "ok"
    assert result["warnings"] == []
    assert config is not None


def test_check_config_warns_about_weak_settings(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
[storage]
kv_path = "/srv/notes/notes.sqlite3"
default_directory = "/srv/notes"

[encryption]
password = "hunter2"
kdf_iterations = 10
""",
    )

    result, exit_code, _ = check_config(path)

    assert exit_code == 0
    assert len(result["warnings"]) == 3
    assert any("plain text" in warning for warning in result["warnings"])
    assert any("kdf_iterations" in warning for warning in result["warnings"])
    assert any("default_directory" in warning for warning in result["warnings"])


def test_check_config_missing_file(tmp_path: Path) -> None:
    result, exit_code, config = check_config(tmp_path / "absent.toml")

    assert exit_code == 2
    assert result["error"]["type"] == "missing_file"
    assert config is None


def test_check_config_invalid_toml(tmp_path: Path) -> None:
    result, exit_code, _ = check_config(_write(tmp_path, "logging_level = "))

    assert exit_code == 1
    assert result["error"]["type"] == "invalid_format"


def test_check_config_validation_error_details(tmp_path: Path) -> None:
    result, exit_code, _ = check_config(_write(tmp_path, "[encryption]\nkdf_iterations = 0\n"))

    assert exit_code == 3
    assert result["error"]["type"] == "validation_error"
    locations = [detail["loc"] for detail in result["error"]["details"]]
    assert "encryption.kdf_iterations" in locations


def test_explain_config_flattens_nested_models() -> None:
    fields = {field["name"]: field for field in explain_config()}

    assert "storage.kv_path" in fields
    assert "encryption.kdf_iterations" in fields
    assert fields["encryption.kdf_iterations"]["default"] == 480_000
    assert fields["storage.default_directory"]["type"] == "Optional[Path]"
    assert fields["state_path"]["required"] is False
