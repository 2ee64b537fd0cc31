"""Core Typer application and logging bootstrap for the tokenagg CLI package."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

import typer

from tokenagg.config import settings

from .help_text import VERBOSE_COMMAND_HELP, VERBOSE_GLOBAL_OVERVIEW

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class CLIApp(typer.Typer):
    """Custom Typer application that prints usage on bad invocation."""

    # ------------------------------------------------------------------
    def command_names(self) -> list[str]:
        """Return registered command names, aliases included."""

        names = []
        for info in self.registered_commands:
            name = info.name or info.callback.__name__.replace("_", "-")
            names.append(name)
        return names

    def _unique_commands(self) -> dict[str, dict[str, object]]:
        """Return mapping of canonical command names to callback/aliases."""

        mapping: dict[str, dict[str, object]] = {}
        for info in self.registered_commands:
            name = info.name or info.callback.__name__
            canonical = name.replace("_", ":")
            entry = mapping.setdefault(canonical, {"callback": info.callback, "aliases": []})
            entry["aliases"].append(name)  # type: ignore[union-attr]
        return mapping

    def main(self, args: list[str] | None = None):
        """Run the CLI with *args*, handling help flags and bad input."""

        if args is None:
            args = sys.argv[1:]

        if args and "--help-verbose" in args:
            target = args[0] if args.index("--help-verbose") > 0 else None
            self._print_verbose_help(target.replace("_", ":") if target else None)
            raise SystemExit(0)

        if args and args[0] == "--help":
            self._print_basic_help()
            raise SystemExit(0)

        if not args or args[0] not in self.command_names():
            typer.echo("Usage: python -m tokenagg.cli [COMMAND]")
            typer.echo("Commands:")
            for cname in sorted(self._unique_commands()):
                typer.echo(f"  {cname}")
            raise SystemExit(0 if not args else 1)
        return self(args=args)

    # ------------------------------------------------------------------
    def _print_basic_help(self) -> None:
        """Print a short summary of available commands."""

        typer.echo("Usage: python -m tokenagg.cli [--help | --help-verbose] COMMAND [ARGS]")
        typer.echo("\nAvailable commands:")
        for cname, info in sorted(self._unique_commands().items()):
            doc = getattr(info["callback"], "__doc__", None) or ""
            desc = doc.strip().splitlines()[0] if doc.strip() else ""
            typer.echo(f"  {cname:<14} {desc}")
        typer.echo("\nTip: run COMMAND --help-verbose for flags and sample output.")

    def _print_verbose_help(self, command: str | None = None) -> None:
        """Print detailed command reference with optional command filtering."""

        typer.echo(VERBOSE_GLOBAL_OVERVIEW.strip())
        typer.echo()
        if command:
            text = VERBOSE_COMMAND_HELP.get(command)
            typer.echo(text.rstrip() if text else f"No verbose help available for '{command}'.")
            return
        for cname in sorted(self._unique_commands()):
            text = VERBOSE_COMMAND_HELP.get(cname)
            if text:
                typer.echo(text.rstrip())
                typer.echo()


app = CLIApp(no_args_is_help=True)
log = logging.getLogger("tokenagg")

# Configure logging once with console + optional rotating file handler
if not getattr(log, "_configured", False):
    log.setLevel(getattr(logging, str(settings.log_level).upper(), logging.INFO))
    log.propagate = False
    ch = logging.StreamHandler()
    ch.setLevel(log.level)
    ch.setFormatter(logging.Formatter(LOG_FORMAT))
    log.addHandler(ch)
    if settings.log_file:
        try:
            log_dir = os.path.dirname(settings.log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            fh = RotatingFileHandler(
                settings.log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
            )
        except OSError as exc:
            log.warning("file logging disabled (%s): %s", settings.log_file, exc)
        else:
            fh.setLevel(log.level)
            fh.setFormatter(logging.Formatter(LOG_FORMAT))
            log.addHandler(fh)
    setattr(log, "_configured", True)

__all__ = ["CLIApp", "app", "log"]
