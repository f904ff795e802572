"""Clerk user migration and backup tooling.

Imports legacy user records into a Clerk instance (create-or-update with
pacing and rate-limit cooldowns), exports users, organizations and
memberships to CSV, and helps remap legacy team ids to organization ids.
"""
