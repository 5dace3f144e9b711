"""todos/ -- Per-user todo items, the resources a user owns.

TodoStore is the owned-resources provider for the soft-delete coordinator:
cascade_soft_delete_by_owner() satisfies auth.deletion.OwnedResources
structurally, so auth/ never imports this package.

Layer rule: todos/ imports stdlib, third-party libraries, core/, and
auth.store (only so the users table its foreign key points at is registered).
It does NOT import from api/ or audit/.
"""
