#!/usr/bin/env python3
"""
Export the OpenAPI schema of the marketplace API
Front-end clients generate their TypeScript types from this file
"""

import json
import sys
from pathlib import Path
from typing import Optional

# Add parent directory to path to import app
sys.path.insert(0, str(Path(__file__).parent.parent))

from app import app


def strip_vendor_extensions(obj):
    """Remove x- vendor extensions for generators that reject them"""
    if isinstance(obj, dict):
        return {k: strip_vendor_extensions(v) for k, v in obj.items() if not k.startswith("x-")}
    if isinstance(obj, list):
        return [strip_vendor_extensions(item) for item in obj]
    return obj


def export_schema(output_dir: Optional[Path] = None) -> Path:
    """Write ``schema.json`` into ``output_dir`` (default: ``openapi/`` at the project root)"""
    output_dir = output_dir or Path(__file__).parent.parent / "openapi"
    output_dir.mkdir(parents=True, exist_ok=True)

    schema = strip_vendor_extensions(app.openapi())
    output_file = output_dir / "schema.json"
    with open(output_file, "w") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)

    print(f"OpenAPI schema exported to {output_file} ({len(schema.get('paths', {}))} paths)")
    return output_file


if __name__ == "__main__":
    export_schema(Path(sys.argv[1]) if len(sys.argv) > 1 else None)
