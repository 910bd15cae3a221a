"""Metadata of databases, tables, columns and indexes."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import IntEnum

from rmdb.disk_manager import RMDBError


class ColType(IntEnum):
    """The type of a column."""

    INT = 0
    FLOAT = 1
    STRING = 2


class TableNotFoundError(RMDBError):
    """No table has the given name."""

    def __init__(self, tab_name: str) -> None:
        super().__init__(f"Table not found: {tab_name}")
        self.tab_name = tab_name


class ColumnNotFoundError(RMDBError):
    """No column has the given name."""

    def __init__(self, col_name: str) -> None:
        super().__init__(f"Column not found: {col_name}")
        self.col_name = col_name


class IndexNotFoundError(RMDBError):
    """No index covers the given columns."""

    def __init__(self, tab_name: str, col_names: Iterable[str]) -> None:
        self.tab_name = tab_name
        self.col_names = list(col_names)
        super().__init__(f"Index not found: {tab_name}.({', '.join(self.col_names)})")


def _take(tokens: Iterator[str]) -> str:
    try:
        return next(tokens)
    except StopIteration:
        raise ValueError("metadata is truncated") from None


def _take_int(tokens: Iterator[str]) -> int:
    token = _take(tokens)
    try:
        return int(token)
    except ValueError:
        raise ValueError(f"expected an integer in metadata, got {token!r}") from None


@dataclass
class ColMeta:
    """A column of a table."""

    tab_name: str
    name: str
    type: ColType
    len: int
    offset: int
    index: bool = False

    def dumps(self) -> str:
        return (
            f"{self.tab_name} {self.name} {int(self.type)} {self.len} "
            f"{self.offset} {int(self.index)}"
        )

    @classmethod
    def read(cls, tokens: Iterator[str]) -> ColMeta:
        """Read a column from an iterator of whitespace-separated tokens."""
        tokens = iter(tokens)
        tab_name = _take(tokens)
        name = _take(tokens)
        raw_type = _take_int(tokens)
        try:
            col_type = ColType(raw_type)
        except ValueError:
            raise ValueError(f"unknown column type {raw_type}") from None
        length = _take_int(tokens)
        offset = _take_int(tokens)
        index = bool(_take_int(tokens))
        return cls(tab_name, name, col_type, length, offset, index)


@dataclass
class IndexMeta:
    """An index on one or more columns of a table."""

    tab_name: str
    col_tot_len: int = 0
    cols: list[ColMeta] = field(default_factory=list)

    @property
    def col_num(self) -> int:
        return len(self.cols)

    @property
    def col_names(self) -> list[str]:
        return [col.name for col in self.cols]

    def dumps(self) -> str:
        head = f"{self.tab_name} {self.col_tot_len} {self.col_num}"
        return "".join([head, *("\n" + col.dumps() for col in self.cols)])

    @classmethod
    def read(cls, tokens: Iterator[str]) -> IndexMeta:
        tokens = iter(tokens)
        tab_name = _take(tokens)
        col_tot_len = _take_int(tokens)
        col_num = _take_int(tokens)
        cols = [ColMeta.read(tokens) for _ in range(col_num)]
        return cls(tab_name, col_tot_len, cols)


@dataclass
class TabMeta:
    """A table: its columns and its indexes."""

    name: str = ""
    cols: list[ColMeta] = field(default_factory=list)
    indexes: list[IndexMeta] = field(default_factory=list)

    def is_col(self, col_name: str) -> bool:
        return any(col.name == col_name for col in self.cols)

    def is_index(self, col_names: Iterable[str]) -> bool:
        """True if an index covers exactly these columns in this order."""
        wanted = list(col_names)
        return any(index.col_names == wanted for index in self.indexes)

    def get_index_meta(self, col_names: Iterable[str]) -> IndexMeta:
        wanted = list(col_names)
        for index in self.indexes:
            if index.col_names == wanted:
                return index
        raise IndexNotFoundError(self.name, wanted)

    def get_col(self, col_name: str) -> ColMeta:
        for col in self.cols:
            if col.name == col_name:
                return col
        raise ColumnNotFoundError(col_name)

    def dumps(self) -> str:
        parts = [f"{self.name}\n{len(self.cols)}\n"]
        parts.extend(col.dumps() + "\n" for col in self.cols)
        parts.append(f"{len(self.indexes)}\n")
        parts.extend(index.dumps() + "\n" for index in self.indexes)
        return "".join(parts)

    @classmethod
    def read(cls, tokens: Iterator[str]) -> TabMeta:
        tokens = iter(tokens)
        name = _take(tokens)
        num_cols = _take_int(tokens)
        cols = [ColMeta.read(tokens) for _ in range(num_cols)]
        num_indexes = _take_int(tokens)
        indexes = [IndexMeta.read(tokens) for _ in range(num_indexes)]
        return cls(name, cols, indexes)


@dataclass
class DbMeta:
    """A database: its name and its tables."""

    name: str = ""
    tabs: dict[str, TabMeta] = field(default_factory=dict)

    def is_table(self, tab_name: str) -> bool:
        return tab_name in self.tabs

    def set_tab_meta(self, tab_name: str, meta: TabMeta) -> None:
        self.tabs[tab_name] = meta

    def get_table(self, tab_name: str) -> TabMeta:
        try:
            return self.tabs[tab_name]
        except KeyError:
            raise TableNotFoundError(tab_name) from None

    def dumps(self) -> str:
        """The metadata as text, tables in name order."""
        parts = [f"{self.name}\n{len(self.tabs)}\n"]
        parts.extend(self.tabs[name].dumps() + "\n" for name in sorted(self.tabs))
        return "".join(parts)

    @classmethod
    def loads(cls, text: str) -> DbMeta:
        tokens = iter(text.split())
        name = _take(tokens)
        num_tabs = _take_int(tokens)
        db = cls(name)
        for _ in range(num_tabs):
            tab = TabMeta.read(tokens)
            db.tabs[tab.name] = tab
        return db