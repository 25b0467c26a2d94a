import argparse
import json
import sys
from typing import List, Optional

from birthchart.config import Settings, configure_logging
from birthchart.services.chart import ChartOptions, ChartRequest, calculate_chart
from birthchart.services.ephem import BACKENDS, build_provider
from birthchart.services.errors import ChartError
from birthchart.services.patterns import PatternPoint, detect_patterns
from birthchart.services.timescale import CivilDateTime, GeoPosition


def _parse_point(text: str) -> PatternPoint:
    name, sep, lon = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected NAME=LONGITUDE, got {text!r}")
    try:
        return PatternPoint(name.strip(), float(lon))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid longitude in {text!r}") from exc


def _parse_date(text: str):
    try:
        year, month, day = (int(x) for x in text.split("-"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {text!r}") from exc
    return year, month, day


def _parse_time(text: str):
    parts = text.split(":")
    try:
        hour, minute = int(parts[0]), int(parts[1]) if len(parts) > 1 else 0
        second = float(parts[2]) if len(parts) > 2 else 0.0
    except (ValueError, IndexError) as exc:
        raise argparse.ArgumentTypeError(f"expected HH:MM[:SS], got {text!r}") from exc
    return hour, minute, second


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="birthchart", description="Birth chart geometry as JSON")
    sub = parser.add_subparsers(dest="command", required=True)

    chart = sub.add_parser("chart", help="compute a full birth chart")
    chart.add_argument("--date", type=_parse_date, required=True, help="YYYY-MM-DD (local civil date)")
    chart.add_argument("--time", type=_parse_time, default=(12, 0, 0.0), help="HH:MM[:SS] (local civil time)")
    chart.add_argument("--lat", type=float, required=True)
    chart.add_argument("--lon", type=float, required=True)
    chart.add_argument("--house-system", default=None)
    chart.add_argument("--minor", action="store_true", help="include minor aspects")
    chart.add_argument("--midpoints", action="store_true")
    chart.add_argument("--backend", choices=BACKENDS, default=None)
    chart.add_argument("--summary", action="store_true", help="print only the summary")

    pat = sub.add_parser("patterns", help="detect patterns among NAME=LONGITUDE points")
    pat.add_argument("points", nargs="+", type=_parse_point)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings)

    try:
        if args.command == "patterns":
            out = [p.to_dict() for p in detect_patterns(args.points)]
        else:
            provider = build_provider(args.backend or settings.ephemeris_backend, settings.ephemeris_dir)
            (year, month, day), (hour, minute, second) = args.date, args.time
            request = ChartRequest(
                dt=CivilDateTime(year, month, day, hour, minute, second),
                position=GeoPosition(args.lat, args.lon),
                options=ChartOptions(
                    house_system=args.house_system or settings.default_house_system,
                    include_minor_aspects=args.minor,
                    calculate_midpoints=args.midpoints,
                ),
            )
            result = calculate_chart(request, provider)
            out = result.summary() if args.summary else result.to_dict()
    except ChartError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 2

    print(json.dumps(out, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
