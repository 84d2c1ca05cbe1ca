"""
Inklayer: overlay annotations and export compositing for PDF documents.
"""

__version__ = "0.1.0"
