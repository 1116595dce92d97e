"""
Check a synthesized NovellaStack template against the topology rules.

Usage:
    cd infra && cdk synth
    python scripts/validate_plan.py                       # infra/cdk.out/NovellaStack.template.json
    python scripts/validate_plan.py path/to/template.json

Exits 1 when any rule is violated.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

from stacks.plan import PlanError, PlanGraph, validate

DEFAULT_TEMPLATE = Path(__file__).resolve().parent.parent / "infra" / "cdk.out" / "NovellaStack.template.json"


def main():
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_TEMPLATE
    if not path.exists():
        print(f"ERROR: template not found: {path}")
        print("Run `cdk synth` in infra/ first.")
        sys.exit(1)

    template = json.loads(path.read_text(encoding="utf-8"))
    graph = PlanGraph.from_template(template)

    try:
        order = graph.evaluation_order()
    except PlanError as e:
        print(f"[PLAN] {e}")
        sys.exit(1)
    print(f"[PLAN] {len(order)} resources, evaluation order resolved")

    violations = validate(template)
    if not violations:
        print("[PLAN] all checks passed")
        return

    for v in violations:
        print(f"[PLAN] {v}")
    print(f"\n{len(violations)} violation(s).")
    sys.exit(1)


if __name__ == "__main__":
    main()
