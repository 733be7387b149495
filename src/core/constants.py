"""Core constants used across Colbridge modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in client logic.
"""

from __future__ import annotations

SUPPORTED_BACKENDS = ("hbase", "memory")
DEFAULT_BACKEND = "hbase"
DEFAULT_ZOOKEEPER_QUORUM = "localhost"
DEFAULT_ZOOKEEPER_PORT = 2181
DEFAULT_THRIFT_PORT = 9090
DEFAULT_FS_URI = "hdfs://localhost:8020"
DEFAULT_HDFS_PORT = 8020
DEFAULT_MAX_VERSIONS = 1
DEFAULT_SCAN_BATCH_SIZE = 1000
DEFAULT_COPY_CHUNK_SIZE = 1024 * 1024
COPYING_SUFFIX = "._COPYING_"
COLUMN_SEPARATOR = ":"
CONFIG_FILE_VERSION = 1

DEMO_TABLE_NAME = "myLittleHBaseTable"
DEMO_FAMILY_NAMES = ("myLittleFamily", "myLittleFamily1")
DEMO_MAX_VERSIONS = 100
DEMO_ROW_KEY = "myLittleRow"
DEMO_QUALIFIER = "someQualifier"
DEMO_VALUE = "Some Value"
