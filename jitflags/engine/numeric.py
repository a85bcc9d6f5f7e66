from __future__ import annotations

__all__ = ["is_power_of_2", "round_down_power_of_2", "trunc_rem"]


def is_power_of_2(x: int) -> bool:
    return x > 0 and (x & (x - 1)) == 0


def round_down_power_of_2(x: int) -> int:
    """Largest power of two <= x. Undefined for x <= 0."""
    if x <= 0:
        raise ValueError(f"round_down_power_of_2 requires a positive value, got {x}")
    return 1 << (x.bit_length() - 1)


def trunc_rem(value: int, n: int) -> int:
    """Remainder with truncating division (sign follows the dividend), as machine integers do."""
    r = abs(value) % abs(n)
    return -r if value < 0 else r
