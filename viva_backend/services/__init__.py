"""
Service layer for the viva pipeline.
"""
from .payload_locator import locate
from .transcript_extractor import extract_transcript
from .transcript_parser import contains_question, extract_question, parse_transcript
from .sheets_service import GoogleSheetsService, SheetsConfig, build_row, extract_sheet_id, normalize_private_key
from .result_sink import ResultSink
from .vapi_service import VapiConfig, VapiService
from .viva_processing_service import (
    EventKind,
    ProcessingOutcome,
    VivaProcessingService,
    classify_event,
    resolve_student_metadata,
)

__all__ = [
    "locate",
    "extract_transcript",
    "contains_question",
    "extract_question",
    "parse_transcript",
    "GoogleSheetsService",
    "SheetsConfig",
    "build_row",
    "extract_sheet_id",
    "normalize_private_key",
    "ResultSink",
    "VapiConfig",
    "VapiService",
    "EventKind",
    "ProcessingOutcome",
    "VivaProcessingService",
    "classify_event",
    "resolve_student_metadata",
]
