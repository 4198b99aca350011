"""Command line interface for the notesys note store."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import typer
from loguru import logger

from .config import AppConfig, load_config, resolve_env_reference
from .config.inspector import check_config, explain_config
from .crypto.gate import PasswordProvider, StaticPasswordProvider
from .errors import NoteStoreError
from .log import configure_logging
from .notes.session import NoteSession

T = TypeVar("T")


@dataclass(slots=True)
class CLIState:
    """Holds shared state between Typer commands."""

    config_path: Path
    _config: AppConfig | None = None

    def ensure_config(self) -> AppConfig:
        if self._config is None:
            self._config = load_config(AppConfig, self.config_path)
            configure_logging(self._config.logging_level, self._config.log_file)
            logger.debug("Loaded configuration from {}", self.config_path)
        return self._config


class PromptPasswordProvider:
    """Asks for the password on the terminal without echoing it."""

    async def get_password(self, message: str) -> str:
        return typer.prompt(message, hide_input=True)


app = typer.Typer(help="Personal note store")
config_app = typer.Typer(help="Validate and document configuration files")
app.add_typer(config_app, name="config")
migrate_app = typer.Typer(help="Move all notes between storage backends")
app.add_typer(migrate_app, name="migrate")


def _default_config_path() -> Path:
    repo_root = Path(__file__).resolve().parents[1]
    return repo_root / "config" / "example.toml"


def _normalize_format(value: str) -> str:
    return value.lower()


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):  # pragma: no cover - defensive guard
        raise RuntimeError("CLI context is not initialised")
    return state


def _exit(code: int) -> None:
    raise typer.Exit(code)


def _configured_password(config: AppConfig) -> str | None:
    try:
        return resolve_env_reference(config.encryption.password)
    except EnvironmentError as exc:
        logger.error("Cannot resolve encryption password: {}", exc)
        _exit(1)
        return None


def _password_provider(config: AppConfig) -> PasswordProvider:
    password = _configured_password(config)
    if password:
        return StaticPasswordProvider(password)
    return PromptPasswordProvider()


def _run_session(ctx: typer.Context, action: Callable[[NoteSession], Awaitable[T]]) -> T:
    """Open the note session, run ``action`` in it and map store failures to exit code 1."""

    state = _get_state(ctx)
    config = state.ensure_config()

    async def _runner() -> T:
        session = NoteSession.from_config(config, _password_provider(config))
        try:
            await session.init()
            return await action(session)
        finally:
            await session.drain_background()
            session.close()

    try:
        return asyncio.run(_runner())
    except NoteStoreError as exc:
        logger.error("{}: {}", type(exc).__name__, exc)
        _exit(1)
        raise  # pragma: no cover - _exit always raises


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    config: Path = typer.Option(
        _default_config_path(),
        help="Path to the TOML configuration file",
    ),
) -> None:
    """Initialise CLI state."""

    ctx.obj = CLIState(config_path=config.resolve())

    if ctx.invoked_subcommand is None:
        logger.warning("No command provided. Try 'status' or 'list'.")
        _exit(0)


@app.command(help="Show where notes are stored and how many there are")
def status(ctx: typer.Context) -> None:
    async def _status(session: NoteSession) -> None:
        logger.info("=== Storage ===")
        logger.info("Backend: {}", session.backend.describe())
        logger.info("Notes: {} ({} encrypted)", session.note_count, len(session.encrypted_names))
        logger.info("Current note: {}", await session.current_note())
        logger.info("Encryption active: {}", session.is_using_encryption())

    _run_session(ctx, _status)


@app.command("list", help="List note names")
def list_notes(
    ctx: typer.Context,
    system: bool = typer.Option(False, "--system", help="Include the built-in read-only notes"),
) -> None:
    async def _list(session: NoteSession) -> list[tuple[str, bool]]:
        rows = [(name, session.cache.is_encrypted(name)) for name in session.note_names]
        if system:
            rows.extend((name, False) for name in session.system_notes.names())
        return rows

    for name, is_encrypted in _run_session(ctx, _list):
        typer.echo(f"{name} (encrypted)" if is_encrypted else name)


@app.command(help="Print the content of a note")
def show(ctx: typer.Context, name: str = typer.Argument(..., help="Note name")) -> None:
    async def _show(session: NoteSession) -> str | None:
        return await session.load_note_if_exists(NoteSession.sanitize_note_name(name))

    content = _run_session(ctx, _show)
    if content is None:
        logger.error("Note '{}' does not exist", name)
        _exit(1)
    typer.echo(content)


@app.command(help="Create a note unless it already exists")
def create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Note name"),
    content: str = typer.Option("", "--content", help="Initial content"),
) -> None:
    note_name = NoteSession.sanitize_note_name(name)

    async def _create(session: NoteSession) -> bool:
        return await session.create_note(note_name, content)

    if not _run_session(ctx, _create):
        logger.warning("Note '{}' already exists; nothing created", note_name)


@app.command(help="Replace the content of a note, creating it when missing")
def save(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Note name"),
    content: str | None = typer.Option(None, "--content", help="New content"),
    file: Path | None = typer.Option(None, "--file", help="Read the new content from this file"),
) -> None:
    if (content is None) == (file is None):
        logger.error("Pass exactly one of --content or --file")
        _exit(1)
    if file is not None:
        try:
            content = file.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("Cannot read {}: {}", file, exc)
            _exit(1)
    note_name = NoteSession.sanitize_note_name(name)

    async def _save(session: NoteSession) -> None:
        await session.save_note(note_name, content or "")

    _run_session(ctx, _save)
    logger.info("Saved note '{}'", note_name)


@app.command(help="Delete a note")
def delete(ctx: typer.Context, name: str = typer.Argument(..., help="Note name")) -> None:
    async def _delete(session: NoteSession) -> None:
        await session.delete_note(NoteSession.sanitize_note_name(name))

    _run_session(ctx, _delete)


@app.command(help="Rename a note, keeping its content and encryption")
def rename(
    ctx: typer.Context,
    old: str = typer.Argument(..., help="Current note name"),
    new: str = typer.Argument(..., help="New note name"),
) -> None:
    async def _rename(session: NoteSession) -> None:
        await session.rename_note(
            NoteSession.sanitize_note_name(old),
            NoteSession.sanitize_note_name(new),
        )

    _run_session(ctx, _rename)


@migrate_app.command("to-dir", help="Move every note into a directory")
def migrate_to_dir(
    ctx: typer.Context,
    directory: Path | None = typer.Argument(None, help="Target directory (defaults to storage.default_directory)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview actions without writing notes"),
) -> None:
    config = _get_state(ctx).ensure_config()
    target = directory or config.storage.default_directory
    if target is None:
        logger.error("No directory given and storage.default_directory is not configured")
        _exit(1)
        return
    target = target.expanduser().resolve()
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Cannot create notes directory {}: {}", target, exc)
        _exit(1)

    async def _migrate(session: NoteSession) -> dict[str, Any]:
        report = await session.switch_to_directory(target, dry_run=dry_run)
        return report.to_dict()

    typer.echo(json.dumps(_run_session(ctx, _migrate), indent=2, ensure_ascii=False))


@migrate_app.command("to-kv", help="Move every note back into the key-value store")
def migrate_to_kv(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview actions without writing notes"),
) -> None:
    async def _migrate(session: NoteSession) -> dict[str, Any]:
        report = await session.switch_to_key_value(dry_run=dry_run)
        return report.to_dict()

    typer.echo(json.dumps(_run_session(ctx, _migrate), indent=2, ensure_ascii=False))


@app.command(help="Encrypt every note of the directory store with a password")
def encrypt(ctx: typer.Context) -> None:
    config = _get_state(ctx).ensure_config()
    password = _configured_password(config) or typer.prompt(
        "Password", hide_input=True, confirmation_prompt=True
    )

    async def _encrypt(session: NoteSession) -> int:
        return await session.encrypt_all_notes(password)

    logger.info("Encrypted {} notes", _run_session(ctx, _encrypt))


@app.command(help="Decrypt every note of the directory store and forget the password")
def decrypt(ctx: typer.Context) -> None:
    async def _decrypt(session: NoteSession) -> int:
        return await session.decrypt_all_notes()

    logger.info("Decrypted {} notes", _run_session(ctx, _decrypt))


@app.command(help="Read every note file once to warm a synced folder")
def preload(ctx: typer.Context) -> None:
    async def _preload(session: NoteSession) -> int:
        started = session.preload_all_notes()
        await session.drain_background()
        return started

    logger.info("Pre-loaded {} notes", _run_session(ctx, _preload))


@config_app.command(help="Validate the configuration file")
def check(
    ctx: typer.Context,
    format: str = typer.Option(  # noqa: A002 - match CLI option name
        "text",
        "--format",
        case_sensitive=False,
        help="Output format for validation results",
        callback=_normalize_format,
    ),
) -> None:
    state = _get_state(ctx)
    result, exit_code, _ = check_config(state.config_path)

    if format == "json":
        print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
        _exit(exit_code)

    if result["status"] == "ok":
        logger.info("Configuration OK: {}", result["config_path"])
        for warning in result["warnings"]:
            logger.warning(warning)
    else:
        error: dict[str, Any] = result["error"]
        logger.error(
            "Configuration error ({}) for {}: {}",
            error["type"],
            result["config_path"],
            error["message"],
        )
        for detail in error.get("details", []):
            location = detail["loc"] or "<root>"
            logger.error("  - {}: {} ({})", location, detail["message"], detail["type"])

    _exit(exit_code)


@config_app.command(help="Describe available configuration fields")
def explain(
    format: str = typer.Option(  # noqa: A002 - match CLI option name
        "text",
        "--format",
        case_sensitive=False,
        help="Output format for configuration schema",
        callback=_normalize_format,
    ),
) -> None:
    fields = explain_config()

    if format == "json":
        print(json.dumps({"fields": fields}, indent=2, ensure_ascii=False, default=str))
        return

    logger.info("Configuration schema ({} fields):", len(fields))
    for field in fields:
        default_value = field["default"]
        if isinstance(default_value, (dict, list)):
            default_repr = json.dumps(default_value, ensure_ascii=False, default=str)
        elif default_value is None:
            default_repr = "None"
        else:
            default_repr = str(default_value)
        logger.info(
            "  - {name}: type={type}, required={required}, default={default}, description={description}",
            name=field["name"],
            type=field["type"],
            required="yes" if field["required"] else "no",
            default=default_repr,
            description=field["description"] or "(no description)",
        )


def main(argv: list[str] | None = None) -> int:
    """Entry point compatible with setuptools console scripts."""

    try:
        result = app(args=argv, standalone_mode=False)
    except typer.Exit as exc:  # pragma: no cover - Typer translates exit codes
        return exc.exit_code
    if isinstance(result, int):
        return result
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
