"""Benefit Calc CLI."""
