from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from app.schemas.metrics import DerivedMetrics, RawUsageSample


_CENTS = Decimal("0.01")


def round_half_up(value: float) -> float:
    """Round to 2 decimals with halves going up (1.005 -> 1.01, 2.675 -> 2.68).

    ``round()`` uses banker's rounding on the binary value, which turns 1.005
    into 1.0. The shortest decimal repr of the float is rounded instead.
    """
    return float(Decimal(repr(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def cpu_percentage(raw: RawUsageSample) -> float:
    """CPU usage between the two samples as a percentage of one core."""
    system_delta = raw.system_cpu_total - raw.system_cpu_total_prev
    if system_delta <= 0:
        # first sample or host counter reset
        return 0.0

    cpu_delta = raw.container_cpu_total - raw.container_cpu_total_prev
    if cpu_delta <= 0:
        # container counter reset
        return 0.0

    percent = (cpu_delta / system_delta) * 100.0
    if raw.online_cpus > 0:
        percent /= raw.online_cpus
    return percent


def memory_percentage(usage: int, limit: int) -> float:
    if limit <= 0:
        return 0.0
    return (usage / limit) * 100.0


def derive_metrics(raw: RawUsageSample) -> DerivedMetrics:
    """Turn a raw stats sample into displayable metrics. Never raises."""
    return DerivedMetrics(
        cpu_percentage=round_half_up(cpu_percentage(raw)),
        memory_usage=raw.memory_usage,
        memory_limit=raw.memory_limit,
        memory_percent=round_half_up(memory_percentage(raw.memory_usage, raw.memory_limit)),
        timestamp=raw.timestamp,
    )
