"""Storage layer of a small relational database: pages, buffer pool, record files, write-ahead log records, catalogue metadata and SQL syntax trees."""

__version__ = "0.1.0"