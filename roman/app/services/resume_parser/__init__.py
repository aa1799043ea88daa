"""
Resume parsing module - format detection, text extraction, AI structuring.
"""
from .ai_client import AIStructuringClient
from .fetcher import RemoteFileFetcher
from .format_detector import detect_file_type
from .pipeline import ResumeParsingPipeline, normalize_text
from .text_extractors import extract_text

__all__ = [
    "AIStructuringClient",
    "RemoteFileFetcher",
    "ResumeParsingPipeline",
    "detect_file_type",
    "extract_text",
    "normalize_text",
]
