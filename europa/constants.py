"""Currency constants of the runtime."""

DOTS = 1_000_000_000_000
DOLLARS = DOTS // 100
CENTS = DOLLARS // 100
MILLICENTS = CENTS // 1_000

_U32_MAX = 2**32 - 1


def deposit(items: int, byte_count: int) -> int:
    """Deposit required for storing `items` entries totalling `byte_count` bytes."""
    for name, value in (("items", items), ("byte_count", byte_count)):
        if not 0 <= value <= _U32_MAX:
            raise ValueError(f"{name} must fit in an unsigned 32-bit integer")
    return items * 20 * DOLLARS + byte_count * 100 * MILLICENTS