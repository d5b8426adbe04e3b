"""Benefit Calc - payroll tax and Section 125 benefit optimization engine."""

__version__ = "0.3.0"
