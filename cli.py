#!/usr/bin/env python
"""
Command-line interface for the parking lanes engine

Usage:
    python cli.py fetch --bbox 52.500,13.400,52.510,13.420 --output berlin.json
    python cli.py render --input berlin.json --datetime 2025-06-02T09:30 --zoom 17 --output lanes.geojson
    python cli.py legend
"""

import os
import sys
import json
import argparse
from datetime import datetime
from typing import Any, Dict, List

from loguru import logger

from planes.config import get_config, validate_config
from planes.osm.api_client import OsmApiClient, OverpassAPIClient
from planes.osm.download import build_overpass_query
from planes.osm.parser import OsmResponseParser
from planes.parking.legend import LEGEND
from planes.parking.render_state import RenderState


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def parse_bbox(text: str):
    """'south,west,north,east' -> tuple of floats"""
    parts = [float(p) for p in text.split(",")]
    if len(parts) != 4:
        raise argparse.ArgumentTypeError("bbox must be south,west,north,east")
    south, west, north, east = parts
    if south >= north or west >= east:
        raise argparse.ArgumentTypeError("bbox must be south,west,north,east with south < north and west < east")
    return south, west, north, east


def to_feature_collection(state: RenderState) -> Dict[str, Any]:
    """GeoJSON FeatureCollection of every rendered record"""
    features: List[Dict[str, Any]] = []
    for records in (state.lanes, state.areas, state.points):
        for key, record in records.items():
            properties = record.model_dump(mode="json", exclude={"geometry"})
            features.append({
                "type": "Feature",
                "id": key,
                "geometry": record.geometry.model_dump(mode="json"),
                "properties": properties,
            })
    return {"type": "FeatureCollection", "features": features}


def cmd_fetch(args):
    """Download a bounding box and save the raw response"""
    setup_logging(args.verbose)
    config = get_config()
    bbox = args.bbox

    try:
        if args.editor:
            raw = OsmApiClient().get_map(bbox)
        else:
            raw = OverpassAPIClient().query(build_overpass_query(bbox, config.api.overpass_timeout))
    except RuntimeError as e:
        logger.error(f"Download failed: {e}")
        return 1

    output_dir = os.path.dirname(args.output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(args.output, "w", encoding="utf-8") as f:
        json.dump(raw, f, ensure_ascii=False)
    logger.info(f"✓ Saved {len(raw.get('elements', []))} elements to {args.output}")
    return 0


def cmd_render(args):
    """Render lanes, areas and points of a saved download"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        instant = datetime.fromisoformat(args.datetime) if args.datetime else datetime.now()
    except ValueError:
        logger.error(f"Invalid --datetime: {args.datetime}")
        return 1

    with open(args.input, "r", encoding="utf-8") as f:
        raw = json.load(f)

    data = OsmResponseParser.parse_elements(raw)
    state = RenderState(zoom=args.zoom, instant=instant, editor_mode=args.editor)
    state.merge(data)

    lanes, areas, points = state.summary()
    logger.info(f"Rendered {lanes} lanes, {areas} areas, {points} points at {instant.isoformat()} (zoom {args.zoom})")

    collection = to_feature_collection(state)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(collection, f, indent=2)
        logger.info(f"✓ Written: {args.output}")
    else:
        print(json.dumps(collection, indent=2))
    return 0


def cmd_legend(args):
    """Print the category legend"""
    setup_logging(args.verbose)
    for entry in LEGEND:
        print(f"{entry.category.value:<18} {entry.color:<12} {entry.text}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Parking lanes CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Download a bounding box:
    python cli.py fetch --bbox 52.500,13.400,52.510,13.420 --output berlin.json

  Render it for Monday morning at zoom 17:
    python cli.py render --input berlin.json --datetime 2025-06-02T09:30 --zoom 17 -o lanes.geojson
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    fetch_parser = subparsers.add_parser("fetch", help="Download OSM data for a bounding box")
    fetch_parser.add_argument("--bbox", type=parse_bbox, required=True, help="south,west,north,east")
    fetch_parser.add_argument("--output", "-o", required=True, help="Output JSON file")
    fetch_parser.add_argument("--editor", action="store_true", help="Use the OSM API (current versions)")
    fetch_parser.set_defaults(func=cmd_fetch)

    render_parser = subparsers.add_parser("render", help="Render parking conditions as GeoJSON")
    render_parser.add_argument("--input", "-i", required=True, help="OSM JSON file")
    render_parser.add_argument("--datetime", "-d", help="ISO date and time (default: now)")
    render_parser.add_argument("--zoom", "-z", type=float, default=17, help="Map zoom")
    render_parser.add_argument("--editor", action="store_true", help="Include unknown conditions and untagged streets")
    render_parser.add_argument("--output", "-o", help="Output GeoJSON file (stdout if not specified)")
    render_parser.set_defaults(func=cmd_render)

    legend_parser = subparsers.add_parser("legend", help="Print the category legend")
    legend_parser.set_defaults(func=cmd_legend)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    validate_config(get_config())
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
