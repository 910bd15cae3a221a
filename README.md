# rmdb

The storage layer of a small relational database engine, in plain Python with no
third-party dependencies.

## What is in it

- **Pages and the buffer pool.** `rmdb.page` defines `PageId` (file descriptor and page
  number) and `Page` (a 4096-byte frame with `is_dirty`, `pin_count` and a `page_lsn`
  property). `rmdb.buffer_pool_manager.BufferPoolManager` caches pages in a fixed number
  of frames: `fetch_page`, `new_page`, `unpin_page`, `flush_page`, `delete_page` and
  `flush_all_pages`. When no frame is free it asks a replacer for a victim, by default
  `rmdb.lru_replacer.LRUReplacer`, which evicts the frame that has been unpinned the
  longest.
- **Disk access.** `rmdb.disk_manager.DiskManager` reads and writes pages of open files,
  hands out page numbers per file (`allocate_page`, `set_fd2pageno`, `get_fd2pageno`),
  creates, opens, closes and removes files and directories, and appends to and reads
  from the log file (`write_log`, `read_log`; the file is `db.log` unless another name is
  given). Its errors derive from `RMDBError`.
- **Record files.** `rmdb.rm_manager.RmManager` creates, opens, closes and removes table
  data files of fixed-size records (1 to 512 bytes; other sizes raise
  `InvalidRecordSizeError`). `rmdb.rm_file_handle.RmFileHandle` inserts, reads, updates
  and deletes records addressed by `rmdb.rm_defs.Rid`; `insert_record_at` stores a record
  at a chosen position. `rmdb.rm_scan.RmScan` walks every stored record in page and slot
  order and can be iterated. Slot occupancy lives in a per-page bitmap, handled by the
  functions in `rmdb.bitmap`.
- **Write-ahead log records.** `rmdb.log_manager` defines `BeginLogRecord`,
  `CommitLogRecord`, `AbortLogRecord` and `InsertLogRecord`, each with `serialize`,
  `LogRecord.deserialize` and a readable `format`. `LogManager.add_log_to_buffer` gives a
  record the next sequence number and buffers it; `flush_log_to_disk` appends the buffer
  to the log file.
- **Catalogue.** `rmdb.sm_meta` defines `ColMeta`, `IndexMeta`, `TabMeta` and `DbMeta`
  with a whitespace-separated text format (`dumps`, `DbMeta.loads`).
  `rmdb.sm_manager.SmManager` creates, opens, closes and drops databases (a database is a
  directory holding `db.meta`, the log file and one data file per table) and creates,
  describes, lists and drops tables.
- **SQL syntax tree.** `rmdb.ast` defines the statement and expression nodes
  (`SelectStmt`, `InsertStmt`, `UpdateStmt`, `CreateTable`, `BinaryExpr` and the rest).
  `rmdb.ast_printer.format_tree` renders a tree as indented text and `print_tree` writes
  that to standard output.

## Installation

```
pip install .
```

## Example: records

```python
from rmdb.disk_manager import DiskManager
from rmdb.buffer_pool_manager import BufferPoolManager
from rmdb.rm_manager import RmManager
from rmdb.rm_scan import RmScan

disk = DiskManager()
pool = BufferPoolManager(64, disk)
records = RmManager(disk, pool)

records.create_file("people.tbl", 8)
handle = records.open_file("people.tbl")
rid = handle.insert_record(b"alice\0\0\0")
assert handle.get_record(rid).data == b"alice\0\0\0"

for found in RmScan(handle):
    print(found.page_no, found.slot_no)

records.close_file(handle)
```

## Example: a database with a table

```python
from rmdb.disk_manager import DiskManager
from rmdb.buffer_pool_manager import BufferPoolManager
from rmdb.rm_manager import RmManager
from rmdb.sm_manager import ColDef, SmManager
from rmdb.sm_meta import ColType

disk = DiskManager()
pool = BufferPoolManager(64, disk)
sm = SmManager(disk, pool, RmManager(disk, pool))

sm.create_db("shop")
sm.open_db("shop")  # works inside the "shop" directory until close_db
sm.create_table("items", [ColDef("id", ColType.INT, 4), ColDef("name", ColType.STRING, 16)])
print(sm.desc_table("items"))  # [('id', 'INT', 'NO'), ('name', 'STRING', 'NO')]
print(sm.show_tables())        # ['items'], also appended to output.txt
sm.close_db()
```

## Example: a syntax tree

```python
from rmdb.ast import BinaryExpr, Col, IntLit, SelectStmt, SvCompOp
from rmdb.ast_printer import format_tree

tree = SelectStmt(
    cols=[Col("", "a")],
    tabs=["tb"],
    conds=[BinaryExpr(Col("", "a"), SvCompOp.EQ, IntLit(1))],
)
print(format_tree(tree))
```

## What it does not do

- There is no SQL parser: syntax trees are built by hand from the `rmdb.ast` classes.
- Nothing plans or executes queries, and there is no server or command-line client.
- There are no index files; `SmManager` manages tables only, and `TabMeta` merely
  records index metadata.
- There are no transactions, locking or crash recovery. Log records can be written and
  read back, but there are no update or delete log records and nothing replays the log.

## Running the tests

```
pip install .[test]
pytest
```