"""
casamatch CLI entry point.

Usage:
    python -m casamatch classify "Agenzia Garibaldi" "Privato"     Classify a set of advertisers
    python -m casamatch match properties.json buyers.json          Rank properties for each buyer
    python -m casamatch dedupe listings.json --dry-run             Preview shared properties
    python -m casamatch dedupe listings.json --output shared.json  Write shared properties
    python -m casamatch dedupe new.json --existing shared.json     Extend earlier shared properties

Every command prints JSON on stdout; logs go to stderr.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from casamatch.adapters.base_adapter import BuyerCriteria, Listing, Property, SharedProperty
from casamatch.adapters.memory_store import InMemorySharedPropertyStore
from casamatch.core.agency_classifier import compute_classification, group_agency_names
from casamatch.core.deduplication import PropertyDeduper
from casamatch.core.exceptions import ConfigError
from casamatch.core.listing_clusters import deduplicate_listings
from casamatch.core.matching_engine import MatchingEngine
from casamatch.utils.config import MatchingConfig, load_config
from casamatch.utils.logging import setup_logging_from_config

logger = logging.getLogger(__name__)


def _read_json_list(path):
    """Load a JSON file holding a list of objects."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list")
    return data


def _print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))


def cmd_classify(args, matching):
    """Classify a property from the names of its advertisers."""
    groups = group_agency_names(args.names)
    classification = compute_classification(args.names, matching)

    _print_json({
        'classification': classification.value,
        'agencies': list(groups.values()),
    })
    return 0


def cmd_match(args, matching):
    """Rank properties for every buyer."""
    properties = [Property.from_dict(p) for p in _read_json_list(args.properties)]
    buyers = [
        BuyerCriteria.from_dict(b, matching.point_radius_m)
        for b in _read_json_list(args.buyers)
    ]

    engine = MatchingEngine(matching)
    results = []
    for criteria in buyers:
        matches = engine.find_matches_for_buyer(
            criteria, properties,
            min_score=args.min_score,
            max_results=args.max_results,
        )
        results.append({
            'client_id': criteria.client_id,
            'matches': [m.to_dict() for m in matches],
        })

    _print_json(results)
    return 0


def cmd_dedupe(args, matching):
    """Fold listings into shared properties and report duplicate clusters."""
    listings = [Listing.from_dict(l) for l in _read_json_list(args.listings)]

    existing = []
    if args.existing:
        existing = [SharedProperty.from_dict(s) for s in _read_json_list(args.existing)]
        logger.info(f"Loaded {len(existing)} shared properties from {args.existing}")

    store = InMemorySharedPropertyStore(existing)
    deduper = PropertyDeduper(matching)
    for listing in listings:
        deduper.ingest(listing, store)

    shared = [s.to_dict() for s in store.list_shared_properties()]
    clusters = deduplicate_listings(listings, matching)

    if args.dry_run:
        logger.info("DRY RUN - no output file written")
    elif args.output:
        Path(args.output).write_text(json.dumps(shared, indent=2, ensure_ascii=False), encoding='utf-8')
        logger.info(f"Wrote {len(shared)} shared properties to {args.output}")

    _print_json({
        'listings': len(listings),
        'shared_properties': shared if not args.output or args.dry_run else len(shared),
        'clusters': clusters.to_dict(),
    })
    return 0


def build_parser():
    parser = argparse.ArgumentParser(description='casamatch - property matching and deduplication')
    parser.add_argument('--config', help='Path to config.yaml')
    parser.add_argument('--log-level', help='Override logging level')
    sub = parser.add_subparsers(dest='command', required=True)

    classify = sub.add_parser('classify', help='Classify a set of agency names')
    classify.add_argument('names', nargs='*', help='Agency or seller names')

    match = sub.add_parser('match', help='Rank properties for each buyer')
    match.add_argument('properties', help='JSON file with a list of properties')
    match.add_argument('buyers', help='JSON file with a list of buyer criteria')
    match.add_argument('--min-score', type=int, default=None, help='Minimum score (default from config)')
    match.add_argument('--max-results', type=int, default=None, help='Maximum matches per buyer')

    dedupe = sub.add_parser('dedupe', help='Deduplicate listings into shared properties')
    dedupe.add_argument('listings', help='JSON file with a list of listings')
    dedupe.add_argument('--output', help='Write shared properties to this file')
    dedupe.add_argument('--existing', help='JSON file with shared properties to extend')
    dedupe.add_argument('--dry-run', action='store_true', help='Preview without writing')

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        matching = MatchingConfig.from_config(config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging_from_config(config, args.log_level)

    commands = {
        'classify': cmd_classify,
        'match': cmd_match,
        'dedupe': cmd_dedupe,
    }

    try:
        return commands[args.command](args, matching)
    except (OSError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
