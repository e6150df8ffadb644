"""Venue access, conversion, accounting and liquidation."""
