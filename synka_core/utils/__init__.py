from .clock import Clock, utc_now, to_epoch_ms, from_epoch_ms, to_iso, parse_iso

__all__ = ["Clock", "utc_now", "to_epoch_ms", "from_epoch_ms", "to_iso", "parse_iso"]
