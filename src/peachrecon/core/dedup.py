# File: src/peachrecon/core/dedup.py
"""Drop short-term bookings that duplicate an active mid-term tenancy.

A tenancy is sometimes entered manually as a mid-term booking *and* synced
from OwnerRez. Counting both would double the revenue for that stay.
"""

from typing import Callable, Iterable, Sequence

from peachrecon.models.booking import MidTermBooking, OwnerRezBooking

NameMatcher = Callable[[str, str], bool]


def _normalize(name: str | None) -> str:
    return (name or "").lower().strip()


def first_token_match(guest_name: str | None, tenant_name: str | None) -> bool:
    """Loose guest/tenant match used since the OwnerRez sync went live.

    Either name's first space-delimited token appearing anywhere in the other
    full name counts as a match. An empty name yields an empty token, which
    matches everything.
    """
    guest = _normalize(guest_name)
    tenant = _normalize(tenant_name)
    return tenant.split(" ")[0] in guest or guest.split(" ")[0] in tenant


def is_mid_term_duplicate(
    booking: OwnerRezBooking,
    mid_term: MidTermBooking,
    matcher: NameMatcher = first_token_match,
) -> bool:
    """Stay ranges overlap (inclusive) and guest names match."""
    check_out = booking.check_out or booking.check_in
    dates_overlap = booking.check_in <= mid_term.end_date and check_out >= mid_term.start_date
    return dates_overlap and matcher(booking.guest_name, mid_term.tenant_name)


def filter_mid_term_duplicates(
    bookings: Iterable[OwnerRezBooking],
    mid_term_bookings: Sequence[MidTermBooking],
    matcher: NameMatcher = first_token_match,
) -> list[OwnerRezBooking]:
    """Return bookings that are not duplicates of any mid-term booking.

    First match wins; there is no scoring. With no mid-term bookings the input
    is returned unchanged.
    """
    if not mid_term_bookings:
        return list(bookings)

    return [
        booking
        for booking in bookings
        if not any(is_mid_term_duplicate(booking, mt, matcher) for mt in mid_term_bookings)
    ]
