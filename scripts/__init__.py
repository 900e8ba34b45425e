"""Operator scripts: admin bootstrap and demo data seeding."""
