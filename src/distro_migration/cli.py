"""distro-migrate command line interface."""

from __future__ import annotations

import sys
import time
from dataclasses import replace
from pathlib import Path

import click

from distro_migration import __version__
from distro_migration.agent.actions import MigrationActions
from distro_migration.agent.menu import ACTION_NAMES, EXIT_ACTION, MenuController
from distro_migration.collector.source import SourceCollector
from distro_migration.core.config import MigrationConfig, load_config
from distro_migration.core.errors import ConfigError
from distro_migration.core.logging import bind_migration_context, configure_logging
from distro_migration.execution.system import SystemHost
from distro_migration.report.restore_log import RestoreLog


def _build(ctx: click.Context, echo: bool = True) -> tuple[MigrationActions, MenuController]:
    obj = ctx.obj
    config: MigrationConfig = obj["config"]
    bind_migration_context("target", config.work_dir)
    restore_log = RestoreLog(path=config.log_path, echo=click.echo if echo else None)
    actions = MigrationActions(
        obj["host"],
        config,
        restore_log,
        sleep=obj.get("sleep", time.sleep),
    )
    return actions, MenuController(actions, restore_log)


@click.group()
@click.version_option(version=__version__, prog_name="distro-migrate")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON configuration file.",
)
@click.option(
    "--work-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the report, archives and dumps (default /backup).",
)
@click.option("--log-level", default="INFO", show_default=True)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    default="console",
    show_default=True,
)
@click.option(
    "--mirror-restore-log",
    is_flag=True,
    default=False,
    help="Also emit restore log lines as diagnostic events on stderr.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    work_dir: Path | None,
    log_level: str,
    log_format: str,
    mirror_restore_log: bool,
) -> None:
    """Migrate a CentOS host to Debian.

    Run `collect` on the CentOS host, then `menu` on the Debian host.
    """
    obj = ctx.ensure_object(dict)
    try:
        configure_logging(log_level, log_format, mirror_restore_log=mirror_restore_log)
        if "config" not in obj:
            obj["config"] = load_config(config_path) if config_path else MigrationConfig()
    except ConfigError as e:
        raise click.ClickException(str(e))

    if work_dir is not None:
        obj["config"] = replace(obj["config"], work_dir=work_dir)

    if "host" not in obj:
        config = obj["config"]
        obj["host"] = SystemHost(
            pg_data_root=config.pg_data_root,
            pg_cluster_name=config.pg_cluster_name,
        )


@cli.command()
@click.pass_context
def menu(ctx: click.Context) -> None:
    """Interactive numbered menu on the Debian host."""
    _, controller = _build(ctx)
    controller.run(
        prompt=lambda: click.prompt("Choose an option", default="", show_default=False),
        echo=click.echo,
    )


@cli.command("run")
@click.argument("action", type=click.Choice([a for a in ACTION_NAMES if a != EXIT_ACTION]))
@click.pass_context
def run_action(ctx: click.Context, action: str) -> None:
    """Run a single ACTION without the menu."""
    _, controller = _build(ctx, echo=False)
    result = controller.dispatch(action)
    for message in result.messages:
        click.echo(message)
    if not result.ok:
        sys.exit(1)


@cli.command()
@click.option("--target-user", default=None, help="User on the Debian host.")
@click.option("--target-host", default=None, help="Address of the Debian host.")
@click.option("--remote-dir", default=None, help="Work dir on the Debian host.")
@click.pass_context
def collect(
    ctx: click.Context,
    target_user: str | None,
    target_host: str | None,
    remote_dir: str | None,
) -> None:
    """Inventory, archive, dump and transfer on the CentOS host."""
    config: MigrationConfig = ctx.obj["config"]
    transfer = config.transfer
    if target_user is not None:
        transfer = replace(transfer, user=target_user)
    if target_host is not None:
        transfer = replace(transfer, host=target_host)
    if remote_dir is not None:
        transfer = replace(transfer, remote_dir=remote_dir)
    config = replace(config, transfer=transfer)
    bind_migration_context("source", config.work_dir)

    log = RestoreLog(path=config.collect_log_path, echo=click.echo)
    collector = SourceCollector(ctx.obj["host"], config, log)
    result = collector.collect()

    for error in result.errors:
        click.echo(f"ERROR: {error}", err=True)
    if not result.ok:
        sys.exit(1)


def main() -> None:
    cli()
