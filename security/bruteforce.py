"""
Per-origin brute-force guard for the login endpoint.

In-memory fixed window keyed by client network origin:

    CLEAR -> TRACKING (1..N attempts in window) -> LOCKED (until locked_until) -> CLEAR

Every login request counts, and a successful login clears the key. Records
are spread over shards, each with its own lock, so increment-and-check is
atomic per key without serializing unrelated clients. The store is not
durable; the per-account counters in ``security.lockout`` remain the
authoritative lockout for an account.
"""
import logging
import math
import threading
import time
import zlib
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class _Record:
    __slots__ = ("attempts", "window_reset_at", "locked_until")

    def __init__(self, window_reset_at: float):
        self.attempts = 0
        self.window_reset_at = window_reset_at
        self.locked_until: Optional[float] = None


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    attempts: int
    remaining: int
    reset_at: float
    retry_after: int = 0


class _Shard:
    __slots__ = ("lock", "records")

    def __init__(self):
        self.lock = threading.Lock()
        self.records: Dict[str, _Record] = {}


class BruteForceGuard:
    def __init__(
        self,
        window_seconds: int = 15 * 60,
        max_attempts: int = 5,
        lockout_seconds: int = 15 * 60,
        shards: int = 16,
        clock: Callable[[], float] = time.time,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.window_seconds = window_seconds
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._shards = [_Shard() for _ in range(max(1, shards))]

        self._sweeper: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @classmethod
    def from_config(cls, config) -> "BruteForceGuard":
        return cls(
            window_seconds=config.get("LOGIN_RATE_WINDOW_SECONDS", 15 * 60),
            max_attempts=config.get("LOGIN_RATE_MAX_ATTEMPTS", 5),
            lockout_seconds=config.get("LOGIN_RATE_LOCKOUT_SECONDS", 15 * 60),
            shards=config.get("LOGIN_RATE_SHARDS", 16),
        )

    def _shard(self, key: str) -> _Shard:
        return self._shards[zlib.crc32(key.encode("utf-8")) % len(self._shards)]

    def hit(self, key: str) -> GuardDecision:
        """Admit or reject one attempt for ``key``, counting it if not locked."""
        now = self._clock()
        shard = self._shard(key)

        with shard.lock:
            record = shard.records.get(key)

            if record is not None and record.locked_until is not None and now < record.locked_until:
                return GuardDecision(
                    allowed=False,
                    attempts=record.attempts,
                    remaining=0,
                    reset_at=record.locked_until,
                    retry_after=max(1, math.ceil(record.locked_until - now)),
                )

            # No record, window over, or an elapsed lock: start fresh
            if record is None or record.locked_until is not None or now >= record.window_reset_at:
                record = _Record(window_reset_at=now + self.window_seconds)
                shard.records[key] = record

            record.attempts += 1

            if record.attempts > self.max_attempts:
                record.locked_until = now + self.lockout_seconds
                attempts = record.attempts
            else:
                return GuardDecision(
                    allowed=True,
                    attempts=record.attempts,
                    remaining=self.max_attempts - record.attempts,
                    reset_at=record.window_reset_at,
                )

        logger.warning("login origin locked key=%s attempts=%s lockout_seconds=%s",
                       key, attempts, self.lockout_seconds)
        return GuardDecision(
            allowed=False,
            attempts=attempts,
            remaining=0,
            reset_at=now + self.lockout_seconds,
            retry_after=max(1, math.ceil(self.lockout_seconds)),
        )

    def reset(self, key: str) -> None:
        shard = self._shard(key)
        with shard.lock:
            shard.records.pop(key, None)

    def status(self, key: str) -> Optional[GuardDecision]:
        """Current state of ``key`` without counting an attempt; None when CLEAR."""
        now = self._clock()
        shard = self._shard(key)
        with shard.lock:
            record = shard.records.get(key)
            if record is None:
                return None
            if record.locked_until is not None:
                if now < record.locked_until:
                    return GuardDecision(False, record.attempts, 0, record.locked_until,
                                         max(1, math.ceil(record.locked_until - now)))
                return None
            if now >= record.window_reset_at:
                return None
            return GuardDecision(True, record.attempts, max(0, self.max_attempts - record.attempts),
                                 record.window_reset_at)

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop records whose window is over and that are not locked. Returns count removed."""
        if now is None:
            now = self._clock()
        removed = 0
        remaining = 0
        for shard in self._shards:
            with shard.lock:
                stale = [
                    key for key, rec in shard.records.items()
                    if rec.window_reset_at <= now
                    and (rec.locked_until is None or rec.locked_until <= now)
                ]
                for key in stale:
                    del shard.records[key]
                removed += len(stale)
                remaining += len(shard.records)

        if removed:
            logger.info("rate limit sweep removed=%s remaining=%s", removed, remaining)
        return removed

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.records)
        return total

    def start_sweeper(self, interval_seconds: float) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()

        def _run():
            while not self._stop.wait(interval_seconds):
                self.sweep()

        self._sweeper = threading.Thread(target=_run, name="bruteforce-sweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1)
            self._sweeper = None
