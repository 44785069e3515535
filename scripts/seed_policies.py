#!/usr/bin/env python3
"""Seed ChromaDB with sample insurance policy clauses."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from rag import ChromaStore

SAMPLE_CLAUSES: dict[str, list[dict[str, str]]] = {
    "Motor": [
        {
            "id": "MOT-001",
            "category": "Collision",
            "text": "Collision coverage applies to damage from accidents with other "
            "vehicles or objects. Deductible: $500. Maximum coverage: actual cash "
            "value of the vehicle.",
        },
        {
            "id": "MOT-002",
            "category": "Comprehensive",
            "text": "Comprehensive coverage includes theft, vandalism, weather damage "
            "and animal collisions. Deductible: $250.",
        },
        {
            "id": "MOT-003",
            "category": "Exclusions",
            "text": "Liability coverage excludes intentional damage, racing, driving "
            "under the influence, and commercial delivery use without a rider.",
        },
        {
            "id": "MOT-004",
            "category": "Additional Benefits",
            "text": "Towing and rental reimbursement up to $75 per day for a maximum "
            "of 10 days following a covered loss.",
        },
        {
            "id": "MOT-005",
            "category": "Glass Coverage",
            "text": "Glass damage to windshield and windows is covered with the "
            "deductible waived for repair; the full deductible applies to replacement.",
        },
        {
            "id": "MOT-006",
            "category": "Custom Equipment",
            "text": "Aftermarket parts and equipment are covered up to $5000 limit "
            "only when declared and documented before the loss.",
        },
    ],
    "Health": [
        {
            "id": "HLT-001",
            "category": "Hospital Confinement",
            "text": "Hospital confinement benefit: $200 per day for up to 365 days "
            "per calendar year.",
        },
        {
            "id": "HLT-002",
            "category": "Surgical",
            "text": "Surgical procedure benefits follow the schedule: minor procedures "
            "$500 to $1000, major procedures $2000 to $5000.",
        },
        {
            "id": "HLT-003",
            "category": "Exclusions",
            "text": "Pre-existing conditions are excluded for the first 12 months "
            "of coverage.",
        },
        {
            "id": "HLT-004",
            "category": "Emergency Room",
            "text": "Emergency room visit benefit: $100 per visit for accidental "
            "injury, $75 per visit for illness.",
        },
    ],
    "Home": [
        {
            "id": "HOM-001",
            "category": "Dwelling",
            "text": "Dwelling coverage pays for direct physical loss to the insured "
            "home caused by fire, lightning, windstorm or hail. Deductible: $1000.",
        },
        {
            "id": "HOM-002",
            "category": "Water Damage",
            "text": "Sudden and accidental discharge of water from plumbing is covered. "
            "Gradual leaks and seepage are not covered.",
        },
        {
            "id": "HOM-003",
            "category": "Exclusions",
            "text": "Flood, earthquake and wear and tear are excluded unless an "
            "endorsement is purchased.",
        },
        {
            "id": "HOM-004",
            "category": "Personal Property",
            "text": "Personal property is covered up to $2500 limit per item for "
            "jewelry and electronics stolen from the residence.",
        },
    ],
}


def seed_policies(reset: bool = False, policy_type: str | None = None) -> dict:
    """Index the sample clauses and return simple timing metrics.

    With ``policy_type`` only that type is seeded, and ``reset`` deletes just
    that type's clauses instead of the whole collection.
    """
    metrics = {"added": 0, "duplicates": 0, "deleted": 0, "total_time_ms": 0.0}
    total_start = time.time()

    if policy_type is not None and policy_type not in SAMPLE_CLAUSES:
        raise ValueError(
            f"Unknown policy type {policy_type!r}; "
            f"expected one of: {', '.join(SAMPLE_CLAUSES)}"
        )
    selected = (
        {policy_type: SAMPLE_CLAUSES[policy_type]} if policy_type else SAMPLE_CLAUSES
    )

    print("Initializing ChromaDB...")
    store = ChromaStore()
    print(f"Current clause count: {store.count()}")

    if reset and policy_type:
        metrics["deleted"] = store.delete_policy_type(policy_type)
        print(f"Deleted {metrics['deleted']} existing {policy_type} clauses")
    elif reset and store.count() > 0:
        print("Clearing existing clauses...")
        store.clear()

    for name, clauses in selected.items():
        result = store.add_clauses(clauses, policy_type=name)
        metrics["added"] += len(result["added"])
        metrics["duplicates"] += len(result["duplicates"])
        print(
            f"  - {name}: {len(result['added'])} added, "
            f"{len(result['duplicates'])} already indexed"
        )

    metrics["total_time_ms"] = round((time.time() - total_start) * 1000, 2)
    print(f"Done! Total clauses: {store.count()} ({metrics['total_time_ms']}ms)")

    print("\nTesting search...")
    for r in store.search_policy_type("windshield cracked by a stone", "Motor", 2):
        print(f"  - [{r['id']}] {r['score']}: {r['content'][:80]}...")

    return metrics


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--reset",
        action="store_true",
        help="clear existing clauses (only --policy-type's, when given) before seeding",
    )
    parser.add_argument(
        "--policy-type",
        choices=sorted(SAMPLE_CLAUSES),
        help="seed a single policy type",
    )
    args = parser.parse_args()
    seed_policies(reset=args.reset, policy_type=args.policy_type)
