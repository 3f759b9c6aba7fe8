"""
Custom exceptions for the LLM Extractor.

Error philosophy:
  - SchemaError        → FAIL HARD: the caller handed us a schema we cannot walk.
  - ExtractionError    → FAIL HARD: nothing schema-conformant could be recovered.
  - UrlValidationError → FAIL HARD: URLs still invalid after escape repair.
  - ConversionError    → NON-FATAL: markdown conversion falls back, warning logged.
  - LLMClientError     → FAIL HARD at the provider call.

The sanitizer itself never raises for bad values; it answers with sentinels
and leaves the fail-hard decision to the orchestrator.
"""

from typing import Optional


class ExtractorError(Exception):
    """Base exception for all LLM Extractor errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SchemaError(ExtractorError):
    """
    Raised when a schema cannot be normalized.

    Covers invalid JSON Schema documents, non-local or recursive $ref
    chains, and objects that are neither a mapping nor a pydantic model.
    """
    pass


class ValidationError(ExtractorError):
    """Raised by schema_utils.validate() when a value does not conform."""

    def __init__(self, message: str, errors: Optional[list[str]] = None,
                 details: Optional[dict] = None):
        super().__init__(message, details)
        self.errors = errors or []


# --- FAIL HARD: no usable data ---

class ExtractionError(ExtractorError):
    """
    Raised when the model output could not be sanitized into a value
    that satisfies the schema at the top level.
    """

    def __init__(
        self,
        message: str,
        raw_output=None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        # The unsanitized model output, kept for debugging and retries
        self.raw_output = raw_output


class UrlValidationError(ExtractionError):
    """
    Raised when escape-repaired URLs fail the original (strict) schema.

    Distinct from ExtractionError so callers can tell a fundamentally
    malformed URL apart from a payload that could not be recovered at all.
    """
    pass


# --- NON-FATAL: conversion issues never reach the caller ---

class ConversionError(ExtractorError):
    """
    Raised inside the markdown converter when a conversion pass fails.

    Non-fatal - the converter catches it and falls back.
    """
    pass


class LLMClientError(ExtractorError):
    """Raised when LLM API call fails."""

    def __init__(
        self,
        message: str,
        provider: str,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.provider = provider  # "openai" or "anthropic"
