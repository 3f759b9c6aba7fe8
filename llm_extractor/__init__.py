"""
LLM Extractor

Schema-driven structured data extraction from web pages with LLMs.
- Converter: HTML → Markdown, with optional main-content filtering
- Sanitizer: Recovers the schema-conformant part of model output
- Transformer: Relaxes URL formats for the model, repairs URL escapes after

Public API surface:
  Orchestration   — StructuredExtractor, extract, convert_html_to_markdown
  Core operations — html_to_markdown, sanitize, safe_sanitized_parse,
                    transform_schema_for_llm, fix_url_escape_sequences
  Data models     — ConversionOptions, ContentFormat, ExtractionResult, Usage
  Sentinels       — UNSANITIZABLE, MISSING
  Error types     — ExtractorError and subclasses
"""

# --- Orchestration ---
from .main import StructuredExtractor, extract, convert_html_to_markdown

# --- Core operations (pure, no LLM) ---
from .converter import html_to_markdown
from .sanitizer import sanitize, safe_sanitized_parse
from .transformer import transform_schema_for_llm, fix_url_escape_sequences
from .schema_utils import SchemaKind, kind_of, has_url_constraint, is_valid, validate, UNSANITIZABLE, MISSING

# --- Data models ---
from .schemas import ConversionOptions, ContentFormat, ExtractionResult, Usage

# --- LLM clients ---
from .llm_client import LLMClient, LLMProvider, BaseLLMClient

# --- Exceptions ---
from .exceptions import (
    ExtractorError,
    SchemaError,
    ValidationError,
    ExtractionError,
    UrlValidationError,
    LLMClientError,
)

__version__ = "0.1.0"
__all__ = [
    "StructuredExtractor",
    "extract",
    "convert_html_to_markdown",
    "html_to_markdown",
    "sanitize",
    "safe_sanitized_parse",
    "transform_schema_for_llm",
    "fix_url_escape_sequences",
    "SchemaKind",
    "kind_of",
    "has_url_constraint",
    "is_valid",
    "validate",
    "UNSANITIZABLE",
    "MISSING",
    "ConversionOptions",
    "ContentFormat",
    "ExtractionResult",
    "Usage",
    "LLMClient",
    "LLMProvider",
    "BaseLLMClient",
    "ExtractorError",
    "SchemaError",
    "ValidationError",
    "ExtractionError",
    "UrlValidationError",
    "LLMClientError",
]
