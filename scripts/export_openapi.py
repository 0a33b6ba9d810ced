"""Write the Newsdesk OpenAPI document to disk.

Usage:
    python scripts/export_openapi.py [OUTPUT]

OUTPUT defaults to openapi.json in the project root.  After writing, the
number of operations per router tag is printed so route registrations that
went missing show up in review.
"""

import json
import sys
from collections import Counter
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from newsdesk.server.main import app  # noqa: E402

HTTP_METHODS = {"get", "post", "put", "patch", "delete"}

output_path = Path(sys.argv[1]) if len(sys.argv) > 1 else project_root / "openapi.json"
schema = app.openapi()
output_path.write_text(json.dumps(schema, indent=2, ensure_ascii=False), encoding="utf-8")

operations_by_tag: Counter[str] = Counter()
for path_item in schema.get("paths", {}).values():
    for method, operation in path_item.items():
        if method in HTTP_METHODS:
            for tag in operation.get("tags") or ["untagged"]:
                operations_by_tag[tag] += 1

print(f"Wrote {output_path} ({len(schema.get('paths', {}))} paths)")
for tag, count in sorted(operations_by_tag.items()):
    print(f"  {tag:<24} {count}")
