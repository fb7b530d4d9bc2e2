"""Layered filesystem view engine."""
