#!/usr/bin/env python3
"""
Command-line label image export.

Usage:
    python label_export_cli.py <session.json> <output.png> [options]

Options:
    --preview   Also write a colour preview PNG
    --config    Mesh configuration JSON (default: <session>.mesh_config.json)
    --verbose   Debug logging

Example:
    python label_export_cli.py sample.json sample_labels.png --preview sample_preview.png
"""

import sys
import os
import argparse

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import MeshConfig
from logging_config import configure_logging
from mesh import LabelMesh
from raster import render_preview, save_label_image


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Export a label mesh session to a label PNG',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s session.json labels.png
  %(prog)s session.json labels.png --preview preview.png
  %(prog)s session.json labels.png --config custom.mesh_config.json
        """
    )
    parser.add_argument('input', help='Input session file (.json)')
    parser.add_argument('output', help='Output label image (.png)')
    parser.add_argument('--preview', default=None,
                        help='Also write a colour preview PNG to this path')
    parser.add_argument('--config', default=None,
                        help='Mesh configuration JSON')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable debug logging')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if not os.path.exists(args.input):
        print(f"ERROR: Input file not found: {args.input}")
        return 1

    config = MeshConfig.load(args.config) if args.config else MeshConfig.load_for_session(args.input)
    errors = config.validate()
    if errors:
        for error in errors:
            print(f"ERROR: {error}")
        return 1

    configure_logging("DEBUG" if args.verbose else config.log_level)

    print(f"Loading session: {args.input}")

    try:
        mesh = LabelMesh.load(args.input, config)
        print(f"Mesh: {len(mesh.points())} points, {len(mesh.triangles())} triangles")

        regions = mesh.regions()
        labeled = [r for r in regions if r.label.is_constrained]
        print(f"Regions: {len(regions)} ({len(labeled)} labeled)")

        mesh.export_label_image(args.output)
        print(f"SUCCESS: Exported to {args.output}")

        if args.preview:
            preview = render_preview(regions, mesh.points(), mesh.width, mesh.height)
            save_label_image(preview, args.preview)
            print(f"Preview written to {args.preview}")

    except Exception as e:
        print(f"ERROR: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
