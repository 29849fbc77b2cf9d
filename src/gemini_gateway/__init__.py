"""
Gemini Gateway package.

Provides:
- An HTTP gateway (FastAPI) relaying text prompts and media uploads to Gemini
- A thin async Gemini REST client and response text extraction
"""

__version__ = "0.1.0"
