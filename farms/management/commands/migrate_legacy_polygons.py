from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from django.contrib.auth import get_user_model
from django.core.management.base import (
    BaseCommand,
    CommandError,
    CommandParser,
)
from django.db import transaction
from django.utils.text import slugify

from farms.legacy import ParseError, extract_legacy_dates, parse_legacy_bbox
from farms.models import (
    CURRENT_SCHEMA_VERSION,
    LEGACY_SCHEMA_VERSION,
    Alert,
    FarmPolygon,
    PolygonDate,
    SensorReading,
    SiteMarker,
)
from farms.readings import normalize_reading
from ndvi.exceptions import BoundsError
from ndvi.geometry import AreaOfInterest

logger = logging.getLogger(__name__)

_MARKER_BRANCHES = {
    "gsLocal": SiteMarker.GROUND_STATION,
    "treeLocal": SiteMarker.TREE,
}


def _as_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class Command(BaseCommand):
    help = (
        "Upgrade legacy polygons (free-form bbox/date values) to the "
        "versioned schema. Optionally import a legacy per-user JSON export "
        "first."
    )

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--import",
            dest="import_path",
            help="Path to a legacy per-user JSON export to load first.",
        )
        parser.add_argument(
            "--owner",
            help="Username that owns the imported export.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report what would change without writing.",
        )

    def handle(self, *args: object, **options: Any) -> None:
        dry_run = bool(options.get("dry_run"))
        import_path = options.get("import_path")
        with transaction.atomic():
            if import_path:
                owner_name = options.get("owner")
                if not owner_name:
                    raise CommandError("--owner is required with --import.")
                self._import_export(Path(import_path), str(owner_name))
            migrated, failed = self._upgrade_polygons()
            if dry_run:
                transaction.set_rollback(True)

        prefix = "[dry-run] " if dry_run else ""
        self.stdout.write(f"{prefix}migrated={migrated} failed={failed}")

    def _import_export(self, path: Path, owner_name: str) -> None:
        user_model = get_user_model()
        try:
            owner = user_model.objects.get(username=owner_name)
        except user_model.DoesNotExist as exc:
            raise CommandError(f"Unknown owner: {owner_name}") from exc
        try:
            tree = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CommandError(f"Cannot read export {path}: {exc}") from exc
        if not isinstance(tree, dict):
            raise CommandError("Export root must be a JSON object.")

        for key, node in (tree.get("polygons") or {}).items():
            node = node if isinstance(node, dict) else {}
            name = str(node.get("name") or key)
            FarmPolygon.objects.update_or_create(
                owner=owner,
                external_id=str(key),
                defaults={
                    "name": name,
                    "slug": slugify(f"{name}-{key}")[:140] or "polygon",
                    "ring": [],
                    "schema_version": LEGACY_SCHEMA_VERSION,
                    "legacy_bbox": (
                        node["bbox"]
                        if isinstance(node.get("bbox"), str)
                        else json.dumps(node.get("bbox"))
                    ),
                    "legacy_dates": node.get("date"),
                },
            )

        for branch, kind in _MARKER_BRANCHES.items():
            for key, node in (tree.get(branch) or {}).items():
                if not isinstance(node, dict):
                    continue
                lat = _as_float(node.get("lat"))
                long = _as_float(node.get("long"))
                if lat is None or long is None:
                    self.stderr.write(f"skip {branch}/{key}: no coordinates")
                    continue
                marker, _ = SiteMarker.objects.update_or_create(
                    owner=owner,
                    kind=kind,
                    external_id=str(key),
                    defaults={
                        "lat": lat,
                        "long": long,
                        "score": _as_float(node.get("score")),
                    },
                )
                values = normalize_reading(node)
                if kind == SiteMarker.GROUND_STATION and any(
                    value is not None for value in values.values()
                ):
                    SensorReading.objects.create(station=marker, **values)

        for key, message in (tree.get("alert") or {}).items():
            Alert.objects.get_or_create(
                owner=owner,
                external_id=str(key),
                defaults={"message": str(message)},
            )

    def _upgrade_polygons(self) -> tuple[int, int]:
        migrated = failed = 0
        pending = FarmPolygon.objects.filter(
            schema_version__lt=CURRENT_SCHEMA_VERSION
        ).order_by("id")
        for polygon in pending:
            try:
                area = AreaOfInterest.from_coordinates(
                    parse_legacy_bbox(polygon.legacy_bbox)
                )
                days = extract_legacy_dates(polygon.legacy_dates)
            except (ParseError, BoundsError) as exc:
                failed += 1
                logger.warning(
                    "farms.legacy.migrate_failed polygon=%s error=%s",
                    polygon.id,
                    exc,
                )
                self.stderr.write(f"polygon {polygon.id}: {exc}")
                continue

            polygon.ring = area.as_lists()
            polygon.schema_version = CURRENT_SCHEMA_VERSION
            polygon.save()
            PolygonDate.objects.bulk_create(
                [PolygonDate(polygon=polygon, date=day) for day in days],
                ignore_conflicts=True,
            )
            migrated += 1
        return migrated, failed
