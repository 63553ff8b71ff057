#!/usr/bin/env python3
"""
Example script for generating street networks.

Usage:
    python -m tensor_street_generator.examples.generate_network --output ./output
    python -m tensor_street_generator.examples.generate_network --config custom_config.json --seed 7
"""

import argparse
import logging
import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from tensor_street_generator import GeneratorConfig, StreetNetworkGenerator
from tensor_street_generator.logging_config import setup_logging
from tensor_street_generator.metrics import MorphologyMetrics
from tensor_street_generator.validation import NetworkValidator
from tensor_street_generator.visualization import plot_generation_overview


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Generate street networks from a tensor field"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config JSON (optional)"
    )
    parser.add_argument(
        "--output",
        type=str,
        default="./outputs",
        help="Output directory"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed (overrides config)"
    )
    parser.add_argument(
        "--prefix",
        type=str,
        default="generated",
        help="Output filename prefix"
    )
    parser.add_argument(
        "--no-plot",
        action="store_true",
        help="Skip the overview figure"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if args.config:
        print(f"Loading config from {args.config}")
        config = GeneratorConfig.from_json(args.config)
    else:
        print("Using default configuration")
        config = GeneratorConfig()

    print(f"\n{'='*60}")
    print("Tensor Field Street Network Generator")
    print(f"{'='*60}")
    print(f"Domain: {config.world_width:g} x {config.world_height:g}")
    print(f"Seed: {args.seed if args.seed is not None else config.seed}")
    print(f"Basis fields: {len(config.fields) or f'{config.random_field_count} (random)'}")
    print(f"Output: {args.output}")
    print(f"{'='*60}\n")

    print("Step 1: Tracing streamlines...")
    print("-" * 60)

    generator = StreetNetworkGenerator(config, seed=args.seed)
    counts = {}
    for pass_name, _ in generator.iter_generation():
        counts[pass_name] = counts.get(pass_name, 0) + 1
        if counts[pass_name] % 10 == 0:
            print(f"  {pass_name} roads: {counts[pass_name]} streamlines")

    graph = generator.graph
    streamlines = generator.streamlines
    metadata = generator.metadata()

    print("-" * 60)
    print("✓ Generation complete!")
    print(f"  - Main streamlines: {metadata['main_streamlines']}")
    print(f"  - Minor streamlines: {metadata['minor_streamlines']}")
    print(f"  - Vertices: {len(graph.vertices)}")
    print(f"  - Edges: {len(graph.edges)}")
    print()

    print("Step 2: Validating and exporting results...")
    validator = NetworkValidator(config)
    output_dir = Path(args.output)
    results = validator.validate_and_export(
        graph, streamlines, metadata, str(output_dir), prefix=args.prefix
    )
    if not results["validation"]["planar"]:
        print(f"✗ {len(results['validation']['crossings'])} crossing edge pairs found")

    if not args.no_plot:
        print("Step 3: Plotting...")
        morph = MorphologyMetrics.compute_all(graph, config.world_dimensions, streamlines)
        fig = plot_generation_overview(
            generator.tensor_field, streamlines, graph, morph,
            config.origin, config.world_dimensions
        )
        fig.savefig(output_dir / f"{args.prefix}_overview.png", dpi=150)
        plt.close(fig)

    print(f"\n{'='*60}")
    print("✓ All done!")
    print(f"{'='*60}")
    print(f"\nResults saved to: {output_dir}/")
    for suffix in ("vertices.geojson", "edges.geojson", "streamlines.geojson",
                   "graph.graphml", "metrics.json", "report.md"):
        print(f"  - {args.prefix}_{suffix}")
    if not args.no_plot:
        print(f"  - {args.prefix}_overview.png")
    print()

    return 0


if __name__ == "__main__":
    sys.exit(main())
