"""ClaimFlow - claim and emergency-request review workflow."""
__version__ = "1.0.0"
