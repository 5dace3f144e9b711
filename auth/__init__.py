"""auth/ -- Credential and session lifecycle for todoguard.

Holds the credential store, token issuer, session registry, authorization
guard, and the soft-delete coordinator.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, audit/, or todos/. Owned resources reach the
soft-delete coordinator through the OwnedResources protocol instead.
"""
