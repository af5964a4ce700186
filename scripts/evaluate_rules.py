"""Evaluate the saved personalization rules against sample user profiles."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from config.settings import Settings
from services.personalization_service import PersonalizationService, PersonalizedContent
from services.profiles import find_profile, load_sample_profiles
from services.structured_logging import setup_structured_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        help="Settings YAML file (default: config/app.yaml or $PERSONALIZATION_CONFIG)",
    )
    parser.add_argument(
        "--rules",
        help="Rules file to evaluate (.json or .yaml); overrides the configured rules file.",
    )
    parser.add_argument(
        "--profile",
        dest="profile_ids",
        action="append",
        help="Profile id to evaluate (repeatable, default: every sample profile)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as a JSON array.",
    )
    parser.add_argument("--log-level", help="Override the configured log level.")
    return parser


def _as_record(item: PersonalizedContent) -> dict:
    return {
        "profile": item.profile_id,
        "variant": item.variant_key,
        "rule_id": item.result.rule_id,
        "rule_name": item.result.rule_name,
        "title": item.content.title if item.content else None,
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    config = Settings(args.config).to_app_config()
    setup_structured_logging(
        log_file=str(config.log_file) if config.log_file else None,
        log_level=args.log_level or config.log_level,
    )

    if args.rules:
        config = replace(config, rules_file=Path(args.rules))

    profiles = load_sample_profiles(config.profiles_file)
    if args.profile_ids:
        selected = []
        for profile_id in args.profile_ids:
            profile = find_profile(profiles, profile_id)
            if profile is None:
                print(f"Unknown profile: {profile_id}", file=sys.stderr)
                return 1
            selected.append(profile)
        profiles = selected

    service = PersonalizationService.from_config(config)
    results = [service.resolve(profile) for profile in profiles]

    if args.json:
        print(json.dumps([_as_record(item) for item in results], ensure_ascii=False, indent=2))
        return 0

    print(f"{len(service.rules)} rule(s) loaded from {config.rules_file}")
    for item in results:
        matched = item.result.rule_name if item.result.matched else "no rule matched"
        title = item.content.title if item.content else "<no content for key>"
        print(f"  - {item.profile_id}: {item.variant_key} ({matched}) {title}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
