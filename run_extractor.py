#!/usr/bin/env python3
"""
CLI script to run the extractor.

Converts HTML files to markdown and, when a JSON schema file is given,
extracts structured data from them with an LLM.

  run_extractor.py page.html                       → markdown only (no LLM)
  run_extractor.py page.html -s product.json       → structured data (needs API key)
  run_extractor.py page.html --main --images       → conversion options
"""

import argparse
import json
import logging
from pathlib import Path

from bs4 import UnicodeDammit
from dotenv import load_dotenv
load_dotenv()

from llm_extractor.converter import html_to_markdown
from llm_extractor.exceptions import ExtractorError
from llm_extractor.llm_client import LLMProvider
from llm_extractor.logger import setup_logger
from llm_extractor.main import StructuredExtractor
from llm_extractor.schemas import ConversionOptions


def main():
    parser = argparse.ArgumentParser(description="Convert HTML to markdown and extract structured data")
    parser.add_argument("files", nargs="+", help="HTML files to process")
    parser.add_argument("--schema", "-s", help="JSON Schema file; enables LLM extraction")
    parser.add_argument("--prompt", "-p", help="Custom extraction task")
    parser.add_argument("--source-url", "-u", help="Page URL for resolving relative links")
    parser.add_argument("--main", action="store_true", help="Extract main content only")
    parser.add_argument("--images", action="store_true", help="Keep images in markdown")
    parser.add_argument("--clean-urls", action="store_true", help="Strip known tracking suffixes from URLs")
    parser.add_argument("--provider", choices=[p.value for p in LLMProvider], help="LLM provider (default: LLM_PROVIDER or openai)")
    parser.add_argument("--output", "-o", help="Output JSON file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    setup_logger(level=logging.DEBUG if args.verbose else logging.WARNING)

    options = ConversionOptions(
        extract_main_html=args.main,
        include_images=args.images,
        clean_urls=args.clean_urls
    )

    schema = None
    extractor = None
    if args.schema:
        schema = json.loads(Path(args.schema).read_text(encoding="utf-8"))
        provider = LLMProvider(args.provider) if args.provider else None
        # Only create the extractor (which needs an API key) when a schema was given
        extractor = StructuredExtractor(provider=provider)

    results = []

    for filepath in args.files:
        path = Path(filepath)
        print(f"Processing: {path.name}")

        try:
            # Let bs4 sniff the encoding (BOM, <meta charset>, then heuristics)
            html = UnicodeDammit(path.read_bytes(), is_html=True).unicode_markup or ""

            if extractor is None:
                markdown = html_to_markdown(html, options, args.source_url)
                results.append({
                    "file": path.name,
                    "status": "success",
                    "markdown": markdown
                })
                print(f"  ✓ {len(markdown)} chars of markdown")
                continue

            result = extractor.extract(
                html,
                schema,
                options=options,
                source_url=args.source_url,
                prompt=args.prompt
            )

            results.append({
                "file": path.name,
                "status": "success",
                "data": result.data,
                "usage": result.usage.model_dump(),
                "warnings": result.warnings
            })

            if result.warnings:
                print(f"  ✓ extracted ({len(result.warnings)} warnings)")
            else:
                print("  ✓ extracted")

        except (ExtractorError, OSError) as e:
            results.append({
                "file": path.name,
                "status": "error",
                "error": str(e)
            })
            print(f"  ✗ Error: {e}")

    # Output: ensure_ascii=False preserves unicode characters in the JSON
    output = json.dumps(results, indent=2, ensure_ascii=False)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        print(f"\nSaved to: {args.output}")
    else:
        print("\n" + output)


if __name__ == "__main__":
    main()
