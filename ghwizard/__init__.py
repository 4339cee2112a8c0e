"""
ghwizard: an interactive GitHub issue and release wizard, with issue and release manager scripts.
"""

__version__ = "1.0.0"
