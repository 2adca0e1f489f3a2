"""CLI entry point for dbcleaner."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from dbcleaner import __version__
from dbcleaner.config import DEFAULT_CONFIG_NAME

log = logging.getLogger(__name__)

# Default config template
CONFIG_TEMPLATE = """\
database:
  path: characters.db  # Relative paths resolve against this file's directory

owner:
  table: item_instance
  column: guid

# Every column that stores a copy of owner.column. Replaces the built-in list.
dependents:
  - {table: auctionhouse, column: itemguid}
  - {table: character_gifts, column: item_guid}
  - {table: character_inventory, column: item}
  - {table: guild_bank_item, column: item_guid}
  - {table: item_loot_storage, column: containerGUID}
  - {table: item_refund_instance, column: item_guid}
  - {table: item_soulbound_trade_data, column: itemGuid}
  - {table: mail_items, column: item_guid}
  - {table: petition, column: petitionguid}
  - {table: petition_sign, column: petitionguid}

# Fixed remaps applied before the scan, e.g. [{from: 1, to: 3631}]
pre_seed: []

planner:
  stop_at_crossover: false  # true: never move an id to a higher slot

logging:
  level: INFO
"""


def _config_option(fn):
    return click.option(
        "-c",
        "--config",
        "config_path",
        type=click.Path(dir_okay=False, resolve_path=True),
        default=DEFAULT_CONFIG_NAME,
        show_default=True,
        help="Path to the YAML config file.",
    )(fn)


def _load(config_path: str) -> dict:
    from dbcleaner.config import ConfigError, load_config

    try:
        return load_config(Path(config_path))
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _setup_logging(config: dict) -> None:
    from dbcleaner.config import log_level

    logging.basicConfig(
        level=log_level(config),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _open_db(config: dict, config_path: str):
    from dbcleaner.config import resolve_database_path
    from dbcleaner.db import CleanerDB

    db_path = resolve_database_path(config, Path(config_path).parent)
    try:
        return CleanerDB(db_path)
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.version_option(__version__, prog_name="dbcleaner")
def cli() -> None:
    """dbcleaner: compact fragmented identifiers across referencing tables."""


@cli.command()
@_config_option
def init(config_path: str) -> None:
    """Write a config template with the item-instance registry."""
    path = Path(config_path)
    if path.exists():
        click.echo(f"{path} already exists")
        raise SystemExit(1)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(CONFIG_TEMPLATE)
    click.echo(f"Created {path}")
    click.echo("Edit database.path and dependents before running 'dbcleaner run'.")


@cli.command()
@_config_option
def scan(config_path: str) -> None:
    """Report identifier usage and fragmentation without changing anything."""
    from dbcleaner.compact import find_free_slots, scan_inventory
    from dbcleaner.errors import CleanerError, EmptyInventoryError, NoFragmentationError
    from dbcleaner.registry import Registry

    config = _load(config_path)
    registry = Registry.from_config(config)
    owner = registry.owner

    with _open_db(config, config_path) as db:
        try:
            inventory = scan_inventory(db, owner)
        except EmptyInventoryError as exc:
            click.echo(str(exc))
            return
        except CleanerError as exc:
            raise click.ClickException(str(exc)) from exc

        try:
            free = len(find_free_slots(inventory))
        except NoFragmentationError:
            free = 0

        max_id = inventory[-1]
        click.echo(f"{owner.table}.{owner.column}:")
        click.echo(f"  Identifiers: {len(inventory):,}")
        click.echo(f"  Highest: {max_id:,}")
        click.echo(f"  Free slots: {free:,} ({free / max_id * 100:.1f}%)")

        if registry.dependents:
            click.echo("References:")
            for dep in registry.dependents:
                click.echo(f"  {dep}: {db.count_references(dep.table, dep.column):,}")


@cli.command()
@_config_option
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Plan the reassignments and print them without writing.",
)
def run(config_path: str, dry_run: bool) -> None:
    """Run one compaction pass against the configured database."""
    from dbcleaner.compact import STATUS_DENSE, STATUS_EMPTY, STATUS_PLANNED, run_pass
    from dbcleaner.config import pre_seed_entries
    from dbcleaner.errors import CleanerError, PassAbortedError
    from dbcleaner.registry import Registry

    config = _load(config_path)
    _setup_logging(config)
    registry = Registry.from_config(config)

    with _open_db(config, config_path) as db:
        log.info("> Using configuration file:       %s", config_path)
        log.info("> Using database:                 %s", db.path)
        log.info("dbcleaner %s ready...", __version__)

        try:
            result = run_pass(
                db,
                registry,
                pre_seed=pre_seed_entries(config),
                stop_at_crossover=config["planner"]["stop_at_crossover"],
                dry_run=dry_run,
            )
        except PassAbortedError as exc:
            click.echo(f"Pass aborted: {exc}")
            click.echo(f"  Applied before failure: {len(exc.applied)}")
            last = exc.last_applied
            click.echo(f"  Last applied: {last if last else 'none'}")
            click.echo("Re-run the pass to continue from the current state.")
            raise SystemExit(1)
        except CleanerError as exc:
            raise click.ClickException(str(exc)) from exc
        finally:
            log.info("Halting process...")

    owner = registry.owner
    if result.pre_seeded:
        click.echo(f"Pre-seeded: {len(result.pre_seeded)}")
    if result.status == STATUS_EMPTY:
        click.echo(f"No data in `{owner.table}`. Nothing to do.")
        return

    click.echo(f"Identifiers: {result.total_ids:,} (highest {result.max_id:,})")
    click.echo(f"Free slots: {result.free_slots:,}")
    if result.status == STATUS_DENSE:
        click.echo("No fragmentation. Nothing to do.")
    elif result.status == STATUS_PLANNED:
        click.echo(f"Planned reassignments: {len(result.planned)}")
        for entry in result.planned:
            click.echo(f"  {entry}")
    else:
        click.echo(f"Reassigned: {len(result.applied)}")
