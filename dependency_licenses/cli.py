"""
Command-line interface for the dependency license checker.
"""

import argparse
import json
import logging
import re
import sys
from pathlib import Path

from .checker import CheckOptions, LicenseChecker
from .errors import LicenseCheckError, NoPackagesFoundError
from .models import FilterConfiguration
from .scanner import DEFAULT_CONCURRENCY

_UNESCAPED_COMMA = re.compile(r"(?<!\\),")


def parse_license_list(value):
    """Split a comma-separated license list; ``\\,`` keeps a literal comma."""
    if not value:
        return ()
    parts = (part.replace("\\,", ",").strip() for part in _UNESCAPED_COMMA.split(value))
    return tuple(part for part in parts if part)


def parse_package_list(value):
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(";") if part.strip())


def parse_policy_list(value, flag):
    if value and "," in value:
        print(f"Warning: {flag} argument takes semicolons as delimeters instead of commas", file=sys.stderr)
    return parse_package_list(value)


def build_parser():
    parser = argparse.ArgumentParser(
        description="Resolve and check the licenses of installed npm dependencies"
    )

    parser.add_argument(
        "--start",
        default=".",
        help="Project directory to check. Default: current directory"
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--production",
        action="store_true",
        help="Only check production dependencies"
    )
    mode.add_argument(
        "--development",
        action="store_true",
        help="Only check development dependencies"
    )

    parser.add_argument(
        "--depth",
        type=int,
        default=None,
        help="Maximum dependency depth to expand. Default: unlimited"
    )

    parser.add_argument(
        "--tree-file",
        default=None,
        help="Read a pre-expanded dependency tree (JSON) instead of scanning node_modules"
    )

    parser.add_argument(
        "--strategy",
        choices=["eager", "streaming"],
        default="eager",
        help="Resolve every package up front or stream them through the filters. Default: eager"
    )

    parser.add_argument(
        "--concurrency",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help=f"Maximum concurrent manifest reads while scanning. Default: {DEFAULT_CONCURRENCY}"
    )

    parser.add_argument("--clarificationsFile", dest="clarifications_file", default=None,
                        help="JSON file with license clarifications keyed by name@range")
    parser.add_argument("--clarificationsMatchAll", dest="clarifications_match_all", action="store_true",
                        help="Fail when a clarification does not match any package")
    parser.add_argument("--customPath", dest="custom_path", default=None,
                        help="JSON file describing extra output fields")

    parser.add_argument("--excludeLicenses", dest="exclude_licenses", default=None,
                        help="Comma-separated licenses to leave out")
    parser.add_argument("--includeLicenses", dest="include_licenses", default=None,
                        help="Comma-separated licenses to keep")
    parser.add_argument("--includePackages", dest="include_packages", default=None,
                        help="Semicolon-separated packages to keep")
    parser.add_argument("--excludePackages", dest="exclude_packages", default=None,
                        help="Semicolon-separated packages to leave out")
    parser.add_argument("--excludePackagesStartingWith", dest="exclude_packages_starting_with", default=None,
                        help="Semicolon-separated package prefixes to leave out")
    parser.add_argument("--excludePrivatePackages", dest="exclude_private_packages", action="store_true",
                        help="Leave out private packages")
    parser.add_argument("--onlyunknown", dest="only_unknown", action="store_true",
                        help="Only list packages with unknown or guessed licenses")
    parser.add_argument("--unknown", action="store_true",
                        help="Report guessed licenses as UNKNOWN")
    parser.add_argument("--failOn", dest="fail_on", default=None,
                        help="Semicolon-separated licenses that make the check fail")
    parser.add_argument("--onlyAllow", dest="only_allow", default=None,
                        help="Semicolon-separated licenses that are the only ones allowed")
    parser.add_argument("--relativeLicensePath", dest="relative_license_path", action="store_true",
                        help="Report license file paths relative to the start directory")
    parser.add_argument("--relativeModulePath", dest="relative_module_path", action="store_true",
                        help="Report package paths relative to the start directory")
    parser.add_argument("--color", action="store_true",
                        help="Highlight UNKNOWN and UNLICENSED values")

    parser.add_argument(
        "--out",
        default=None,
        help="Write results as JSON to this file instead of stdout"
    )

    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar while reading manifests"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.fail_on and args.only_allow:
        parser.error("--failOn and --onlyAllow can not be used at the same time")
    if args.clarifications_match_all and not args.clarifications_file:
        parser.error("--clarificationsMatchAll requires --clarificationsFile")

    filters = FilterConfiguration(
        exclude_licenses=parse_license_list(args.exclude_licenses),
        include_licenses=parse_license_list(args.include_licenses),
        include_packages=parse_package_list(args.include_packages),
        exclude_packages=parse_package_list(args.exclude_packages),
        exclude_packages_starting_with=parse_package_list(args.exclude_packages_starting_with),
        exclude_private_packages=args.exclude_private_packages,
        only_unknown=args.only_unknown,
        unknown=args.unknown,
        fail_on=parse_policy_list(args.fail_on, "--failOn"),
        only_allow=parse_policy_list(args.only_allow, "--onlyAllow"),
        colorize=args.color,
        relative_module_path=args.relative_module_path,
    )

    if args.production:
        mode = "production"
    elif args.development:
        mode = "development"
    else:
        mode = "all"

    options = CheckOptions(
        start=args.start,
        mode=mode,
        depth=args.depth,
        source="tree" if args.tree_file else "scanner",
        tree_file=args.tree_file,
        strategy=args.strategy,
        clarifications_file=args.clarifications_file,
        clarifications_match_all=args.clarifications_match_all,
        custom_format=args.custom_path,
        relative_license_path=args.relative_license_path,
        unknown=args.unknown,
        concurrency=args.concurrency,
        show_progress=args.progress,
        filters=filters,
    )

    try:
        result = LicenseChecker(options).run()
    except LicenseCheckError as e:
        print(str(e), file=sys.stderr)
        sys.exit(e.exit_code)
    except Exception as e:
        print(f"\nError during license check: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)

    if isinstance(result.error, NoPackagesFoundError):
        # Reported but not treated as a failure.
        print("An error has occurred:", file=sys.stderr)
        print(str(result.error), file=sys.stderr)
        return

    output = json.dumps(result.to_dict(), indent=2, default=str)
    if args.out:
        out_file = Path(args.out)
        out_file.parent.mkdir(parents=True, exist_ok=True)
        out_file.write_text(output + "\n", encoding="utf-8")
        print(f"Results saved to: {out_file}")
    else:
        print(output)


if __name__ == "__main__":
    main()
