"""Reusable patterns shared by the taskboard verticals.

Each module is a self-contained pattern: the generic async repository
and the pure-function access policy.
"""
