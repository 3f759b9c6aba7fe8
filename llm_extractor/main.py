"""
Main orchestrator for the LLM Extractor.

Coordinates the extraction pipeline:
  content → converter (HTML only) → LLM (relaxed schema) → sanitizer
          → URL escape repair → strict validation → ExtractionResult

The model is asked to fill the relaxed schema (URL formats dropped) and its
answer is sanitized against that same schema; strict URL checking happens
only after escape repair, against the caller's original schema.
"""

import json
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from .converter import html_to_markdown
from .exceptions import ExtractionError, UrlValidationError, ValidationError
from .llm_client import BaseLLMClient, LLMClient, LLMProvider
from .logger import get_module_logger, setup_logger
from .sanitizer import sanitize
from .schema_utils import MISSING, UNSANITIZABLE, normalize_schema, validate
from .schemas import ContentFormat, ConversionOptions, ExtractionResult
from .transformer import fix_url_escape_sequences, transform_schema_for_llm

logger = get_module_logger("main")


# --- LLM Prompt Design ---
# The content goes first, fenced by rules, so the instructions that follow
# it are the last thing the model reads. The JSON schema is embedded verbatim;
# models are far more reliable when they can see the exact shape expected.

SYSTEM_PROMPT = """You are a data extraction assistant that extracts structured information from the provided context.
Extract information exactly as presented in the context without adding any extra details or making assumptions.
Respond with valid JSON only."""

DEFAULT_TASK = "Please extract structured information from the provided context."

USER_PROMPT = """Context information is below:
------
Format: {format}
---
{content}
------

Your task is: {task}

Return a JSON value that matches this JSON schema:
```json
{schema}
```

To format your answer:

1. Extract ONLY information explicitly present in the context.
2. It is okay to return null when information is not found.
3. Omit any information that appears incomplete or cut off at the context boundaries.
4. Do not attempt to guess or fill in missing information.
5. Return only the structured data in valid JSON format and nothing else."""


class StructuredExtractor:
    """
    Main orchestrator for schema-driven extraction.

    Coordinates the pipeline:
    1. Converter: HTML → Markdown
    2. LLM client: Markdown + relaxed schema → raw JSON
    3. Sanitizer: raw JSON → schema-conformant value
    4. Transformer: URL escape repair + strict validation
    """

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        llm_client: Optional[BaseLLMClient] = None,
        model: Optional[str] = None,
        log_level: Optional[int] = None
    ):
        if log_level is not None:
            setup_logger(level=log_level)

        # Injected clients make testing possible without API keys
        self.llm_client = llm_client or LLMClient.create(provider=provider, model=model)

        logger.info("StructuredExtractor initialized")

    def build_prompt(
        self,
        content: str,
        llm_schema: Any,
        format: ContentFormat = ContentFormat.MARKDOWN,
        prompt: Optional[str] = None
    ) -> str:
        """Render the user prompt for one extraction."""
        return USER_PROMPT.format(
            format=ContentFormat(format).value,
            content=content,
            task=prompt or DEFAULT_TASK,
            schema=json.dumps(llm_schema, indent=2, ensure_ascii=False)
        )

    def extract(
        self,
        content: str,
        schema: Any,
        format: Union[ContentFormat, str] = ContentFormat.HTML,
        options: Union[ConversionOptions, Mapping[str, Any], None] = None,
        source_url: Optional[str] = None,
        prompt: Optional[str] = None
    ) -> ExtractionResult:
        """
        Extract structured data from content.

        Args:
            content: HTML, markdown or plain text
            schema: JSON Schema dict or pydantic model class
            format: Format of content; only HTML is converted
            options: ConversionOptions (or dict) for HTML conversion
            source_url: Page URL for resolving relative links
            prompt: Custom extraction task replacing the default one

        Returns:
            ExtractionResult with schema-conformant data

        Raises:
            SchemaError: schema cannot be used
            LLMClientError: provider call or JSON parsing failed
            ExtractionError: nothing schema-conformant could be recovered
            UrlValidationError: URLs still invalid after escape repair
        """
        format = ContentFormat(format)
        warnings = []

        # Stage 1: Convert
        # Input:  raw content in the declared format
        # Output: markdown (or the untouched text for non-HTML formats)
        logger.info(f"Starting extraction ({format.value}, {len(content)} chars)")
        if format == ContentFormat.HTML:
            markdown = html_to_markdown(content, options, source_url)
            logger.info(f"Converted HTML to {len(markdown)} chars of markdown")
        else:
            markdown = content

        # Stage 2: Ask the model to fill the relaxed schema
        original_schema = normalize_schema(schema)
        llm_schema = transform_schema_for_llm(original_schema)
        response = self.llm_client.complete_json(
            self.build_prompt(markdown, llm_schema, format, prompt),
            system_prompt=SYSTEM_PROMPT
        )
        raw = response.data

        # Stage 3: Sanitize against the same relaxed schema the model saw
        data = sanitize(llm_schema, raw)
        if data is UNSANITIZABLE or data is MISSING:
            logger.error("Model output could not be sanitized into the schema")
            raise ExtractionError("No valid data was extracted", raw_output=raw)

        if data != raw:
            warnings.append("Model output did not fully match the schema; invalid parts were dropped")
            logger.info("Recovered partial data from model output")

        # Stage 4: Undo markdown escaping in URLs, then apply the strict schema
        data = fix_url_escape_sequences(data, original_schema)
        # Only URL formats differ between the two schemas, so a failure
        # here means a URL the repair could not fix
        try:
            validate(original_schema, data)
        except ValidationError as e:
            logger.error(f"Extracted URLs failed validation: {e.errors}")
            raise UrlValidationError(
                "Extracted data failed validation after URL repair",
                raw_output=raw,
                details={"errors": e.errors}
            ) from e

        logger.info("Extraction complete")
        return ExtractionResult(
            data=data,
            markdown=markdown,
            usage=response.usage,
            warnings=warnings
        )

    def extract_file(
        self,
        file_path: Union[str, Path],
        schema: Any,
        options: Union[ConversionOptions, Mapping[str, Any], None] = None,
        source_url: Optional[str] = None,
        prompt: Optional[str] = None
    ) -> ExtractionResult:
        """Extract from a file; .md/.markdown and .txt skip HTML conversion."""
        file_path = Path(file_path)
        suffix = file_path.suffix.lower()
        if suffix in (".md", ".markdown"):
            format = ContentFormat.MARKDOWN
        elif suffix == ".txt":
            format = ContentFormat.TXT
        else:
            format = ContentFormat.HTML

        content = file_path.read_text(encoding="utf-8", errors="replace")
        return self.extract(content, schema, format, options, source_url, prompt)


def extract(
    content: str,
    schema: Any,
    format: Union[ContentFormat, str] = ContentFormat.HTML,
    options: Union[ConversionOptions, Mapping[str, Any], None] = None,
    source_url: Optional[str] = None,
    prompt: Optional[str] = None,
    provider: Optional[LLMProvider] = None,
    llm_client: Optional[BaseLLMClient] = None
) -> ExtractionResult:
    """Convenience function to extract structured data."""
    extractor = StructuredExtractor(provider=provider, llm_client=llm_client)
    return extractor.extract(content, schema, format, options, source_url, prompt)


def convert_html_to_markdown(
    html: str,
    options: Union[ConversionOptions, Mapping[str, Any], None] = None,
    source_url: Optional[str] = None
) -> str:
    """Convenience function to convert HTML without calling a model."""
    return html_to_markdown(html, options, source_url)
