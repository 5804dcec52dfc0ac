#!/usr/bin/env python3
"""
Generate JSON Schemas, YAML variants, and OpenAPI from Pydantic models.

Outputs under storycomposer/specs/:
 - schemas/*.json (and *.yaml)
 - openapi.yaml and openapi.json
"""
from __future__ import annotations

import json
import sys
from pathlib import Path

try:
    import yaml  # type: ignore
except Exception as exc:  # pragma: no cover
    print("PyYAML is required: pip install pyyaml", file=sys.stderr)
    raise


ROOT = Path(__file__).resolve().parents[1]
PACKAGE = ROOT / "storycomposer"
SPECS = PACKAGE / "specs"
SCHEMAS_DIR = SPECS / "schemas"

sys.path.insert(0, str(ROOT))

from storycomposer.specs.models import (  # noqa: E402
    SCHEMA_MODELS,
    CompositionRequest,
    CompositionResult,
)


def write_json_yaml(obj: dict, json_path: Path) -> None:
    json_path.parent.mkdir(parents=True, exist_ok=True)
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
    yaml_path = json_path.with_suffix(".yaml")
    with yaml_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(obj, f, sort_keys=False)


def generate_model_schemas() -> None:
    for filename, model in SCHEMA_MODELS.items():
        schema = model.model_json_schema()
        write_json_yaml(schema, SCHEMAS_DIR / filename)


def _json_content(ref: str) -> dict:
    return {"application/json": {"schema": {"$ref": f"#/components/schemas/{ref}"}}}


def build_openapi() -> dict:
    components = {
        "securitySchemes": {
            "functionKey": {"type": "apiKey", "in": "header", "name": "x-functions-key"}
        },
        "schemas": {
            "CompositionRequest": CompositionRequest.model_json_schema(),
            "CompositionResult": CompositionResult.model_json_schema(),
        }
    }

    error_content = {"application/json": {"schema": {"type": "object"}}}
    spec = {
        "openapi": "3.0.3",
        "info": {
            "title": "storycomposer Functions API",
            "version": "0.1.0",
            "description": "HTTP endpoints for story composition and caption previews.",
        },
        "servers": [
            {"url": "http://localhost:7071/api", "description": "Local Functions host"}
        ],
        "paths": {
            "/compose_story": {
                "post": {
                    "summary": "Compose a story image from a background and an asset",
                    "operationId": "composeStory",
                    "security": [{"functionKey": []}],
                    "requestBody": {"required": True, "content": _json_content("CompositionRequest")},
                    "responses": {
                        "200": {"description": "Composition succeeded (possibly without caption)", "content": _json_content("CompositionResult")},
                        "400": {"description": "Invalid request body or a path outside the media root", "content": error_content},
                        "404": {"description": "Background or asset file not found", "content": error_content},
                        "415": {"description": "Unsupported background or asset format", "content": error_content},
                        "500": {"description": "Media root not configured, or composition failed during processing", "content": _json_content("CompositionResult")},
                    },
                }
            },
            "/caption_svg": {
                "get": {
                    "summary": "Render caption markup for a tier and shadow",
                    "operationId": "captionSvg",
                    "parameters": [
                        {"in": "query", "name": "content", "schema": {"type": "string", "maxLength": 500}, "required": False},
                        {"in": "query", "name": "tier", "schema": {"type": "integer", "enum": [1, 2, 3]}, "required": False},
                        {"in": "query", "name": "shadow", "schema": {"type": "string", "enum": ["dark", "light"]}, "required": False},
                    ],
                    "responses": {
                        "200": {"description": "Caption SVG", "content": {"image/svg+xml": {"schema": {"type": "string"}}}},
                        "400": {"description": "Invalid parameters", "content": {"text/plain": {"schema": {"type": "string"}}}},
                    },
                }
            },
        },
        "components": components,
    }
    return spec


def generate_openapi() -> None:
    spec = build_openapi()
    write_json_yaml(spec, SPECS / "openapi.json")


def main() -> None:
    generate_model_schemas()
    generate_openapi()
    print("Specs generated under storycomposer/specs/")


if __name__ == "__main__":
    main()
