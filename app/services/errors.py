"""Service-layer error types.

Services raise ``LookupError`` for unknown keys and ``ValueError`` for
rule violations; the only extra type needed is a conflict on unique keys.
"""

from __future__ import annotations


class ConflictError(Exception):
	"""A unique key (MAC address, stage number, ...) is already taken."""
