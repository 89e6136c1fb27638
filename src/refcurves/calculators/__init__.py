"""
Pediatric calculators built on the reference engine.
"""

from . import bilirubin, catch_up, ckid_bp, dosing, gestational_age, growth

__all__ = ["bilirubin", "catch_up", "ckid_bp", "dosing", "gestational_age", "growth"]
