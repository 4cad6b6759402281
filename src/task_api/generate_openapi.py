"""
Utility script to generate and write the OpenAPI schema for the Task API.

This script builds the FastAPI application and serializes its OpenAPI schema to
a JSON file so that API clients and documentation tools can consume a stable
schema without running the server.

Usage:
    python -m task_api.generate_openapi [output_path]

The default output path is interfaces/openapi.json in the working directory.
"""
from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, List, Optional

from loguru import logger

from .main import create_app, openapi_tags
from .repositories import InMemoryTaskStore

DEFAULT_OUTPUT = os.path.join("interfaces", "openapi.json")


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Make sure every tag in openapi_tags appears in the schema's tag metadata,
    without overriding tags already present.
    """
    existing_tags: List[Dict[str, Any]] = schema.get("tags", []) or []
    existing_names = {t.get("name") for t in existing_tags if isinstance(t, dict)}
    for tag in openapi_tags:
        if tag.get("name") not in existing_names:
            existing_tags.append(tag)
    if existing_tags:
        schema["tags"] = existing_tags


# PUBLIC_INTERFACE
def build_openapi_schema() -> Dict[str, Any]:
    """Return the OpenAPI schema of the Task API as a dict."""
    # The schema does not depend on the backend; avoid opening a real one
    schema = create_app(store=InMemoryTaskStore()).openapi()
    _ensure_tags(schema)
    return schema


# PUBLIC_INTERFACE
def generate_openapi(out_path: Optional[str] = None) -> str:
    """Write the OpenAPI schema to `out_path` and return the path written."""
    out_path = out_path or DEFAULT_OUTPUT
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(build_openapi_schema(), f, indent=2, ensure_ascii=False)
    logger.info("Wrote OpenAPI schema to: {}", out_path)
    return out_path


if __name__ == "__main__":
    generate_openapi(sys.argv[1] if len(sys.argv) > 1 else None)
