from prometheus_client import Counter, Histogram

DB_WRITE_TOTAL = Counter(
    "recordkit_db_write_total",
    "Record write statements executed, by outcome.",
    ["table", "op_type", "status"],
)

DB_WRITE_LATENCY_SECONDS = Histogram(
    "recordkit_db_write_latency_seconds",
    "Latency of record write statements.",
    ["table", "op_type"],
)

SAVE_REJECTED_TOTAL = Counter(
    "recordkit_save_rejected_total",
    "Saves skipped because the record had outstanding errors.",
    ["table"],
)
