# geofence_engine/main.py
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from geofence_engine.common.formatters import format_area, format_date, format_distance
from geofence_engine.common.geo import path_length_m, to_point
from geofence_engine.core.containment import structure_area
from geofence_engine.core.export import dumps
from geofence_engine.core.models import TreeNode
from geofence_engine.core.normalize import UnsupportedFormatError
from geofence_engine.observability.logging_setup import get_logger, setup_logging
from geofence_engine.orchestrators.engine import GeofenceEngine
from geofence_engine.settings import load_settings


def _load_engine(args) -> GeofenceEngine:
    engine = GeofenceEngine(args.settings)
    engine.import_structures(Path(args.file).read_bytes())
    return engine


def _print_node(node: TreeNode) -> None:
    s = node.structure
    indent = "  " * node.depth
    area = format_area(structure_area(s, "map"))
    walk = format_distance(path_length_m(s.walk_points))
    print(f"{indent}- {s.code} {s.name} [{s.type}] area={area} walk={walk} "
          f"band={len(s.trigger_band.points)}pts modified={format_date(s.last_modified)}")
    for child in node.children:
        _print_node(child)


def cmd_summary(args) -> int:
    engine = _load_engine(args)
    print(f"{len(engine.structures)} structures")
    for root in engine.structures.forest():
        _print_node(root)
    return 0


def cmd_locate(args) -> int:
    point = to_point({"lat": args.lat, "lng": args.lng})
    if point is None:
        print("Invalid coordinates", file=sys.stderr)
        return 2
    engine = _load_engine(args)
    found = engine.locate(point, args.boundary)
    for structure in found:
        print(f"{structure.code}\t{structure.name}")
    if not found:
        print("Point is not inside any structure")
    return 0


def cmd_convert(args) -> int:
    engine = _load_engine(args)
    payload = engine.export_structures(args.to, force_polygon=args.force_polygon or None)
    text = dumps(payload)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
    else:
        print(text)
    return 0


def cmd_triggers(args) -> int:
    engine = GeofenceEngine(args.settings)
    if not engine.import_triggers(Path(args.file).read_bytes(), replace_all=True):
        print("Invalid trigger export", file=sys.stderr)
        return 1
    stats = engine.triggers.statistics()
    for key, value in stats.model_dump(by_alias=True).items():
        print(f"{key}: {value}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="geofence-engine", description="Geofence structure & trigger tools")
    parser.add_argument("--log-level", default=None, help="로그 레벨 (기본: GEOFENCE_LOG_LEVEL 또는 INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("summary", help="구조물 계층과 면적 출력")
    p.add_argument("file")
    p.set_defaults(func=cmd_summary)

    p = sub.add_parser("locate", help="점을 포함하는 구조물 찾기")
    p.add_argument("file")
    p.add_argument("--lat", type=float, required=True)
    p.add_argument("--lng", type=float, required=True)
    p.add_argument("--boundary", choices=["map", "walk", "trigger"], default="map")
    p.set_defaults(func=cmd_locate)

    p = sub.add_parser("convert", help="구조물 파일 형식 변환")
    p.add_argument("file")
    p.add_argument("--to", choices=["custom", "geojson"], default="custom")
    p.add_argument("--force-polygon", action="store_true", help="walkPoints를 Polygon으로 내보내기")
    p.add_argument("-o", "--output", default=None)
    p.set_defaults(func=cmd_convert)

    p = sub.add_parser("triggers", help="트리거 내보내기 파일 검증 및 통계")
    p.add_argument("file")
    p.set_defaults(func=cmd_triggers)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    args.settings = load_settings()
    if args.log_level:
        args.settings.observability.log_level = args.log_level
    setup_logging(args.settings.observability)
    log = get_logger("geofence.cli")
    try:
        return args.func(args)
    except UnsupportedFormatError as e:
        log.error(f"Unsupported input: {e}")
        return 1
    except OSError as e:
        log.error(f"Cannot read {args.file}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
