"""Ledger domain services: scores, boosters, referrals and competitions.

HTTP routes and socket handlers should go through ``engine``; the other
modules hold the rules and operate inside the caller's transaction.
"""
