"""Owning table and dependent-table registry.

The registry is declared once at startup (from config or the built-in
item-instance defaults) and only consulted afterwards. Each descriptor
carries its UPDATE statement, resolved when the descriptor is created, so
no table or column name is formatted into SQL while a pass is running.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

DEFAULT_OWNER = ("item_instance", "guid")

DEFAULT_DEPENDENTS: tuple[tuple[str, str], ...] = (
    ("auctionhouse", "itemguid"),
    ("character_gifts", "item_guid"),
    ("character_inventory", "item"),
    ("guild_bank_item", "item_guid"),
    ("item_loot_storage", "containerGUID"),
    ("item_refund_instance", "item_guid"),
    ("item_soulbound_trade_data", "itemGuid"),
    ("mail_items", "item_guid"),
    ("petition", "petitionguid"),
    ("petition_sign", "petitionguid"),
)


def is_valid_identifier(name: object) -> bool:
    """Return True if *name* is a plain SQL identifier (letters, digits, ``_``)."""
    return isinstance(name, str) and bool(IDENTIFIER_RE.match(name))


def quote_identifier(name: str) -> str:
    """Validate *name* and return it double-quoted for use in SQL text."""
    if not is_valid_identifier(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return f'"{name}"'


@dataclass(frozen=True)
class OwnerTable:
    """The table whose identifier column is compacted."""

    table: str
    column: str
    select_sql: str = field(init=False, repr=False, compare=False)
    update_sql: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        table = quote_identifier(self.table)
        column = quote_identifier(self.column)
        object.__setattr__(
            self, "select_sql", f"SELECT {column} FROM {table} ORDER BY {column}"
        )
        object.__setattr__(
            self, "update_sql", f"UPDATE {table} SET {column} = ? WHERE {column} = ?"
        )


@dataclass(frozen=True)
class DependentTable:
    """A (table, column) pair that stores copies of the owning identifier."""

    table: str
    column: str
    update_sql: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        table = quote_identifier(self.table)
        column = quote_identifier(self.column)
        object.__setattr__(
            self, "update_sql", f"UPDATE {table} SET {column} = ? WHERE {column} = ?"
        )

    def __str__(self) -> str:
        return f"{self.table}.{self.column}"


@dataclass(frozen=True)
class Registry:
    """Ordered, immutable list of dependents for one owning table."""

    owner: OwnerTable
    dependents: tuple[DependentTable, ...] = ()

    def __post_init__(self) -> None:
        seen: set[tuple[str, str]] = set()
        for dep in self.dependents:
            key = (dep.table, dep.column)
            if key == (self.owner.table, self.owner.column):
                raise ValueError(f"Dependent {dep} is the owning column itself")
            if key in seen:
                raise ValueError(f"Duplicate dependent {dep}")
            seen.add(key)

    @classmethod
    def build(
        cls,
        owner: tuple[str, str],
        dependents: Iterable[tuple[str, str]],
    ) -> Registry:
        return cls(
            owner=OwnerTable(*owner),
            dependents=tuple(DependentTable(t, c) for t, c in dependents),
        )

    @classmethod
    def default(cls) -> Registry:
        """The item-instance registry: ``item_instance.guid`` and its references."""
        return cls.build(DEFAULT_OWNER, DEFAULT_DEPENDENTS)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> Registry:
        """Build a registry from a validated config dict."""
        owner = config["owner"]
        return cls.build(
            (owner["table"], owner["column"]),
            ((d["table"], d["column"]) for d in config["dependents"]),
        )
