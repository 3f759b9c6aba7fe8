"""
Pydantic models defining the contracts between modules.

ConversionOptions: caller → converter (immutable, threaded through every pass)
LLMResponse:       llm_client → orchestrator
ExtractionResult:  orchestrator → caller

Data flow through the pipeline:
  HTML → converter → markdown → llm_client → LLMResponse
  LLMResponse.data + schema → sanitizer → transformer (URL repair) → ExtractionResult
"""

from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ContentFormat(str, Enum):
    """Format of the content handed to the extractor."""
    HTML = "html"
    MARKDOWN = "markdown"
    TXT = "txt"


class ConversionOptions(BaseModel):
    """
    Options for HTML → Markdown conversion.

    Frozen so a single instance can be shared by concurrent conversions;
    camelCase aliases are accepted for callers porting option records
    from other clients.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    extract_main_html: bool = Field(
        default=False,
        alias="extractMainHtml",
        description="Drop boilerplate (nav, footer, ads, ...) before converting"
    )
    include_images: bool = Field(
        default=False,
        alias="includeImages",
        description="Keep images as ![alt](src) instead of stripping them"
    )
    clean_urls: bool = Field(
        default=False,
        alias="cleanUrls",
        description="Strip known tracking suffixes from recognized URLs"
    )

    @classmethod
    def coerce(cls, options: Union["ConversionOptions", Mapping[str, Any], None]) -> "ConversionOptions":
        """Accept an instance, a plain dict, or None (all defaults)."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return cls.model_validate(dict(options))


class Usage(BaseModel):
    """Token accounting reported by the provider (None when unavailable)."""
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None


class LLMResponse(BaseModel):
    """One completion: raw text, parsed JSON (if requested) and usage."""
    text: str
    data: Any = None
    usage: Usage = Field(default_factory=Usage)


class ExtractionResult(BaseModel):
    """Output from the orchestrator: the final pipeline product."""
    data: Any = Field(description="Schema-conformant extracted value")
    markdown: str = Field(description="Content that was sent to the model")
    usage: Usage = Field(default_factory=Usage)
    warnings: list[str] = Field(default_factory=list)  # Non-fatal issues encountered along the way
