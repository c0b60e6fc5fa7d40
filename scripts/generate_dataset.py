"""
Seed Dataset Export
Generates the seed universe from the current settings and writes one
Parquet file per collection.

Usage:
    python scripts/generate_dataset.py
    python scripts/generate_dataset.py --seed 7 --output data/generated
"""

import argparse
from pathlib import Path

from grovyn_core.config.logging import configure_logging
from grovyn_core.data.generators import export_dataset, generate_seed_data
from grovyn_core.main import build_settings

OUTPUT_DIR = Path(__file__).parent.parent / "data" / "generated"


def main():
    parser = argparse.ArgumentParser(description="Export the seed universe as Parquet")
    parser.add_argument("--seed", type=int, default=None, help="Override the global random seed")
    parser.add_argument("--output", default=str(OUTPUT_DIR), help="Target directory")
    args = parser.parse_args()

    settings = build_settings(args.seed)
    configure_logging(settings=settings)

    dataset = generate_seed_data(settings)
    written = export_dataset(dataset, args.output)

    print(f"Seed {settings.seed.random_seed}: {len(dataset.orders):,} orders")
    for name, path in written.items():
        print(f"   {name}: {path}")


if __name__ == "__main__":
    main()
