from .registry import DB_WRITE_LATENCY_SECONDS, DB_WRITE_TOTAL, SAVE_REJECTED_TOTAL

__all__ = ["DB_WRITE_TOTAL", "DB_WRITE_LATENCY_SECONDS", "SAVE_REJECTED_TOTAL"]
