"""Timeout Monitor - deadline predicates for forced termination."""


def deadline(start_marker: int, session_length: int) -> int:
    return start_marker + session_length


def expired(start_marker: int, session_length: int, now: int) -> bool:
    """A session is expired strictly after its deadline."""
    return now > deadline(start_marker, session_length)
