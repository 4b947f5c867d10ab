# Overview: Tells hardware barcode scanners apart from typing by keystroke timing.

from __future__ import annotations

from ..validation import ValidationError


class BarcodeBurstDetector:
    """
    Scanners "type" a whole code in a fast burst and finish with Enter.

    Every key (including Enter and modifier keys) first checks the gap
    since the previous key; a gap above max_interval_ms throws away what
    was buffered. Enter then emits the buffer if it holds at least
    min_length characters. Single-character keys are appended; other
    named keys (Shift, Tab, ...) only update the timing.
    """

    def __init__(self, max_interval_ms: int = 50, min_length: int = 8):
        self.max_interval_ms = max_interval_ms
        self.min_length = min_length
        self._buffer = ""
        self._last_key_ms: float | None = None

    @classmethod
    def from_config(cls, config) -> "BarcodeBurstDetector":
        return cls(
            max_interval_ms=config.get("SCANNER_MAX_INTERVAL_MS", 50),
            min_length=config.get("SCANNER_MIN_LENGTH", 8),
        )

    @property
    def buffer(self) -> str:
        return self._buffer

    def reset(self) -> None:
        self._buffer = ""
        self._last_key_ms = None

    def feed(self, key: str, timestamp_ms: float) -> str | None:
        """Process one key event; returns the scanned code or None."""
        if self._last_key_ms is None or timestamp_ms - self._last_key_ms > self.max_interval_ms:
            self._buffer = ""
        self._last_key_ms = timestamp_ms

        if key == "Enter" and len(self._buffer) >= self.min_length:
            code = self._buffer
            self._buffer = ""
            return code
        if len(key) == 1:
            self._buffer += key
        return None

    def feed_many(self, events) -> list[str]:
        """Feed (key, timestamp_ms) pairs; returns every code emitted."""
        codes = []
        for key, ts in events:
            code = self.feed(key, ts)
            if code is not None:
                codes.append(code)
        return codes


def _parse_events(events) -> list[tuple[str, float]]:
    if not isinstance(events, list):
        raise ValidationError("events must be a list of [key, timestamp_ms] pairs")
    parsed = []
    for event in events:
        if not isinstance(event, (list, tuple)) or len(event) != 2:
            raise ValidationError("events must be a list of [key, timestamp_ms] pairs")
        key, ts = event
        if not isinstance(key, str) or not key or isinstance(ts, bool) or not isinstance(ts, (int, float)):
            raise ValidationError("events must be a list of [key, timestamp_ms] pairs")
        parsed.append((key, ts))
    return parsed


def detect_scans(events, detector: BarcodeBurstDetector) -> list[str]:
    """Replay a recorded keystroke stream and return the scanned codes."""
    return detector.feed_many(_parse_events(events))
