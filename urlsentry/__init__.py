"""urlsentry - local domain-spoofing detection for URLs."""

__version__ = "0.1.0"
