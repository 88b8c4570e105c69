#!/usr/bin/env python
"""dynamic_values.py

Values that depend on what was typed earlier on the command line.
"""
from argscope import ArgScope, Dynamic, Literal, option

REGIONS = {
    "dev": ["local"],
    "staging": ["eu-west-1"],
    "prod": ["eu-west-1", "us-east-1", "ap-south-1"],
}


def regions(seen):
    """Offer the regions of the last `--env` given, or every region."""
    envs = seen.get("--env") or [[]]
    env = envs[-1][0] if envs[-1] else None
    if env in REGIONS:
        return REGIONS[env]
    return sorted({region for names in REGIONS.values() for region in names})


region_source = Dynamic(regions)

if __name__ == "__main__":
    with ArgScope() as scope:
        scope.register(
            "deploy",
            [
                option("-e, --env=ENV", Literal(tuple(REGIONS))),
                option("-r, --region REGION", region_source),
            ],
        )
        for argv in (
            ["deploy", "--region", ""],
            ["deploy", "--env=dev", "--region", ""],
            ["deploy", "-e", "prod", "-r", "u"],
        ):
            print(f"{' '.join(argv)!r:40} -> {scope.complete(argv).candidates()}")
