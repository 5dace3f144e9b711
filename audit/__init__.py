"""audit/ -- Append-only audit trail of security-relevant events.

Layer rule: audit/ imports stdlib, third-party libraries, core/, and
auth.models (for the Role enum it snapshots). It does NOT import from api/
or todos/, and nothing in auth/ imports audit/ -- audit writes are issued
from the API layer.
"""
