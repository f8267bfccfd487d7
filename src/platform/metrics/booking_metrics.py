from prometheus_client import Counter, Histogram


class BookingMetrics:
    """
    Booking core metrics collector

    Tracks the lock/commit protocol (where overbooking contention shows up) and the guest
    verification funnel.
    """

    def __init__(self) -> None:
        # ========== Lock / Commit ==========
        self.lock_attempts = Counter(
            'booking_lock_attempts_total',
            'Booking lock attempts',
            ['tenant_id', 'strategy', 'result'],  # result: locked/insufficient_capacity
        )

        self.lock_duration = Histogram(
            'booking_lock_duration_seconds',
            'Lock transaction duration',
            ['tenant_id'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
        )

        self.commits = Counter(
            'booking_commits_total',
            'Booking commit outcomes',
            ['tenant_id', 'result'],  # result: committed/lock_expired/rolled_back
        )

        self.committed_units = Counter(
            'booking_committed_units_total',
            'Committed ticket units',
            ['tenant_id', 'coverage'],  # coverage: package/paid
        )

        self.expired_locks = Counter(
            'booking_expired_locks_total',
            'Locks purged after their TTL',
        )

        # ========== Guest verification ==========
        self.otp_events = Counter(
            'guest_otp_events_total',
            'Guest OTP state machine events',
            ['tenant_id', 'event'],  # event: sent/resent/verified/mismatch/expired/changed
        )

    # ========== Helper Methods ==========

    def record_lock_attempt(
        self, *, tenant_id: int, strategy: str, result: str, duration: float
    ) -> None:
        self.lock_attempts.labels(tenant_id=tenant_id, strategy=strategy, result=result).inc()
        self.lock_duration.labels(tenant_id=tenant_id).observe(duration)

    def record_commit(
        self, *, tenant_id: int, result: str, covered_units: int = 0, paid_units: int = 0
    ) -> None:
        self.commits.labels(tenant_id=tenant_id, result=result).inc()
        if covered_units:
            self.committed_units.labels(tenant_id=tenant_id, coverage='package').inc(
                covered_units
            )
        if paid_units:
            self.committed_units.labels(tenant_id=tenant_id, coverage='paid').inc(paid_units)

    def record_expired_locks(self, *, count: int) -> None:
        if count:
            self.expired_locks.inc(count)

    def record_otp_event(self, *, tenant_id: int, event: str) -> None:
        self.otp_events.labels(tenant_id=tenant_id, event=event).inc()


# Global metrics instance
metrics = BookingMetrics()
