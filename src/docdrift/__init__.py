"""docdrift: find documentation claims that no longer match the code.

Extraction (``docdrift.extraction``) turns documentation into claims;
verification (``docdrift.verification``) checks them against a codebase
index (``docdrift.index``).
"""
__version__ = "0.1.0"
