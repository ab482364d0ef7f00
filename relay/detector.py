"""
Change detection for aircraft positions.

Only the fields that describe where an aircraft is and which way it is
heading take part in the comparison. Signal strength, message counts and the
seen ages change on every snapshot and would otherwise republish every
aircraft on every cycle.
"""

from contracts.validation import Aircraft
from relay.errors import IdentityError

# Fields compared by has_moved
POSITION_FIELDS = ("lat", "lon", "alt_geom", "alt_baro", "track")


def has_moved(a: Aircraft, b: Aircraft) -> bool:
    """
    Report whether two records of the same aircraft describe different positions.

    Comparison is exact; the receiver repeats values verbatim for an aircraft
    that has not moved.

    Raises:
        IdentityError: if either record has no flight identity, or the
            records belong to different aircraft.
    """
    if not a.flight or not b.flight:
        raise IdentityError("a and/or b represents an unknown aircraft")

    if a.flight != b.flight:
        raise IdentityError(
            f"a and b represent different aircraft ({a.flight!r} != {b.flight!r})"
        )

    return any(getattr(a, name) != getattr(b, name) for name in POSITION_FIELDS)
