"""Convert an OpenAPI document into the adapter's endpoint catalog file."""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any, Dict

from graph_adapter.catalog import EndpointCatalog, descriptor_to_dict


def _load_spec(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def main() -> None:
    parser = argparse.ArgumentParser(description="Build api.json from an OpenAPI document")
    parser.add_argument(
        "--openapi",
        default=os.getenv("GRAPH_OPENAPI_PATH", ""),
        help="Path to the OpenAPI JSON document",
    )
    parser.add_argument(
        "--output",
        default=os.getenv("ADAPTER_CATALOG_PATH", "api.json"),
        help="Where to write the catalog",
    )
    parser.add_argument(
        "--path-prefix",
        action="append",
        default=[],
        help="Only keep endpoints whose path starts with this prefix (repeatable)",
    )

    args = parser.parse_args()
    if not args.openapi:
        raise SystemExit("OpenAPI path missing. Set --openapi or GRAPH_OPENAPI_PATH.")

    spec_path = Path(args.openapi).expanduser().resolve()
    if not spec_path.exists():
        raise SystemExit(f"OpenAPI document not found: {spec_path}")

    catalog = EndpointCatalog.from_openapi(_load_spec(spec_path))
    descriptors = [
        descriptor
        for descriptor in catalog
        if not args.path_prefix or any(descriptor.path.startswith(p) for p in args.path_prefix)
    ]

    output = Path(args.output).expanduser()
    with output.open("w", encoding="utf-8") as handle:
        json.dump([descriptor_to_dict(d) for d in descriptors], handle, indent=2)

    print(f"Wrote {len(descriptors)} of {len(catalog)} endpoints to {output}")


if __name__ == "__main__":
    main()
