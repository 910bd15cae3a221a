"""Database and table management: metadata and DDL statements."""

from __future__ import annotations

import os
from dataclasses import dataclass

from rmdb.buffer_pool_manager import BufferPoolManager
from rmdb.disk_manager import DiskManager, RMDBError
from rmdb.rm_file_handle import RmFileHandle
from rmdb.rm_manager import RmManager
from rmdb.sm_meta import ColMeta, ColType, DbMeta, TabMeta

DB_META_NAME = "db.meta"
OUTPUT_FILE_NAME = "output.txt"


class TableExistsError(RMDBError):
    """A table with the given name already exists."""

    def __init__(self, tab_name: str) -> None:
        super().__init__(f"Table already exists: {tab_name}")
        self.tab_name = tab_name


class DatabaseExistsError(RMDBError):
    """A database with the given name already exists."""

    def __init__(self, db_name: str) -> None:
        super().__init__(f"Database already exists: {db_name}")
        self.db_name = db_name


class DatabaseNotFoundError(RMDBError):
    """No database has the given name."""

    def __init__(self, db_name: str) -> None:
        super().__init__(f"Database not found: {db_name}")
        self.db_name = db_name


@dataclass(frozen=True)
class ColDef:
    """A column of a table to be created."""

    name: str
    type: ColType
    len: int


class SmManager:
    """Keeps the metadata of the open database and runs DDL statements.

    A database is a directory of the same name; while it is open the
    process works inside that directory.
    """

    def __init__(
        self,
        disk_manager: DiskManager,
        buffer_pool_manager: BufferPoolManager,
        rm_manager: RmManager,
    ) -> None:
        self.disk_manager = disk_manager
        self.buffer_pool_manager = buffer_pool_manager
        self.rm_manager = rm_manager
        self.db = DbMeta()
        self.fhs: dict[str, RmFileHandle] = {}
        self.output_file = OUTPUT_FILE_NAME
        self._prev_cwd: str | None = None

    @property
    def is_open(self) -> bool:
        return self._prev_cwd is not None

    def is_dir(self, db_name: str) -> bool:
        """True if db_name names a directory."""
        return self.disk_manager.is_dir(db_name)

    def create_db(self, db_name: str) -> None:
        """Create the directory of a new database with empty metadata and log."""
        if self.is_dir(db_name):
            raise DatabaseExistsError(db_name)
        self.disk_manager.create_dir(db_name)
        with open(os.path.join(db_name, DB_META_NAME), "w", encoding="utf-8") as f:
            f.write(DbMeta(db_name).dumps())
        self.disk_manager.create_file(
            os.path.join(db_name, self.disk_manager.log_file_name)
        )

    def drop_db(self, db_name: str) -> None:
        """Remove a database directory and everything in it."""
        if not self.is_dir(db_name):
            raise DatabaseNotFoundError(db_name)
        self.disk_manager.destroy_dir(db_name)

    def open_db(self, db_name: str) -> None:
        """Enter the database directory, load its metadata and open its tables."""
        if not self.is_dir(db_name):
            raise DatabaseNotFoundError(db_name)
        if self.is_open:
            self.close_db()
        prev_cwd = os.getcwd()
        os.chdir(db_name)
        try:
            with open(DB_META_NAME, encoding="utf-8") as f:
                self.db = DbMeta.loads(f.read())
            self.fhs = {
                name: self.rm_manager.open_file(name) for name in sorted(self.db.tabs)
            }
        except BaseException:
            for fh in self.fhs.values():
                self.rm_manager.close_file(fh)
            self.fhs = {}
            self.db = DbMeta()
            os.chdir(prev_cwd)
            raise
        self._prev_cwd = prev_cwd

    def close_db(self) -> None:
        """Write metadata and table data to disk and leave the database directory."""
        if not self.is_open:
            return
        try:
            self.flush_meta()
            for fh in self.fhs.values():
                self.rm_manager.close_file(fh)
        finally:
            self.fhs = {}
            self.db = DbMeta()
            prev_cwd, self._prev_cwd = self._prev_cwd, None
            os.chdir(prev_cwd)

    def flush_meta(self) -> None:
        """Overwrite the metadata file with the current metadata."""
        with open(DB_META_NAME, "w", encoding="utf-8") as f:
            f.write(self.db.dumps())

    def show_tables(self) -> list[str]:
        """Names of all tables in name order; also appended to the output file."""
        names = sorted(self.db.tabs)
        with open(self.output_file, "a", encoding="utf-8") as out:
            out.write("| Tables |\n")
            out.writelines(f"| {name} |\n" for name in names)
        return names

    def desc_table(self, tab_name: str) -> list[tuple[str, str, str]]:
        """One (field, type, indexed) row per column of the table."""
        tab = self.db.get_table(tab_name)
        return [
            (col.name, col.type.name, "YES" if col.index else "NO") for col in tab.cols
        ]

    def create_table(self, tab_name: str, col_defs: list[ColDef]) -> None:
        """Create a table with the given columns laid out one after another."""
        if self.db.is_table(tab_name):
            raise TableExistsError(tab_name)
        cols = []
        offset = 0
        for col_def in col_defs:
            cols.append(
                ColMeta(
                    tab_name=tab_name,
                    name=col_def.name,
                    type=col_def.type,
                    len=col_def.len,
                    offset=offset,
                    index=False,
                )
            )
            offset += col_def.len
        self.rm_manager.create_file(tab_name, offset)
        self.db.set_tab_meta(tab_name, TabMeta(tab_name, cols))
        self.fhs[tab_name] = self.rm_manager.open_file(tab_name)
        self.flush_meta()

    def drop_table(self, tab_name: str) -> None:
        """Remove a table and its data file."""
        self.db.get_table(tab_name)
        fh = self.fhs.pop(tab_name, None)
        if fh is not None:
            self.rm_manager.close_file(fh)
        self.rm_manager.destroy_file(tab_name)
        del self.db.tabs[tab_name]
        self.flush_meta()