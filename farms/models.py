from __future__ import annotations

from decimal import Decimal
from typing import Any, Final

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.text import slugify

from ndvi.exceptions import BoundsError
from ndvi.geometry import AreaOfInterest

CURRENT_SCHEMA_VERSION: Final[int] = 2
LEGACY_SCHEMA_VERSION: Final[int] = 1


class FarmPolygon(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="polygons",
    )
    # Key the polygon had in the legacy per-user tree, if migrated.
    external_id = models.CharField(max_length=120, blank=True, default="")

    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140)

    # Closed ring of [lon, lat] pairs (WGS84 degrees)
    ring = models.JSONField(default=list)

    # Derived from ring on save; used for map fitting and NDVI requests
    bbox_south = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True
    )
    bbox_west = models.DecimalField(
        max_digits=10, decimal_places=6, null=True, blank=True
    )
    bbox_north = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True
    )
    bbox_east = models.DecimalField(
        max_digits=10, decimal_places=6, null=True, blank=True
    )

    schema_version = models.PositiveSmallIntegerField(
        default=CURRENT_SCHEMA_VERSION
    )
    # Raw values kept verbatim from the legacy tree until migrated
    legacy_bbox = models.TextField(null=True, blank=True)
    legacy_dates = models.JSONField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["owner", "slug"],
                name="uniq_polygon_owner_slug",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.owner_id})"

    def area_of_interest(self) -> AreaOfInterest:
        return AreaOfInterest.from_coordinates(self.ring)

    def clean(self) -> None:
        super().clean()
        if self.schema_version < CURRENT_SCHEMA_VERSION:
            return
        try:
            self.area_of_interest()
        except BoundsError as exc:
            raise ValidationError({"ring": str(exc)}) from exc

    def sync_bbox(self) -> None:
        if self.schema_version < CURRENT_SCHEMA_VERSION or not self.ring:
            return
        bbox = self.area_of_interest().bbox
        q = Decimal("0.000001")
        self.bbox_south = bbox.south.quantize(q)
        self.bbox_west = bbox.west.quantize(q)
        self.bbox_north = bbox.north.quantize(q)
        self.bbox_east = bbox.east.quantize(q)

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.slug:
            base = slugify(self.name)[:120] or "polygon"
            self.slug = base
        self.sync_bbox()
        super().save(*args, **kwargs)


class PolygonDate(models.Model):
    """A day with imagery available for a polygon."""

    polygon = models.ForeignKey(
        FarmPolygon, on_delete=models.CASCADE, related_name="dates"
    )
    date = models.DateField()

    class Meta:
        ordering = ["date"]
        constraints = [
            models.UniqueConstraint(
                fields=["polygon", "date"],
                name="uniq_polygon_date",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.polygon_id}@{self.date.isoformat()}"


class SiteMarker(models.Model):
    GROUND_STATION = "ground_station"
    TREE = "tree"
    KIND_CHOICES = [
        (GROUND_STATION, "Ground station"),
        (TREE, "Tree"),
    ]

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="site_markers",
    )
    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    external_id = models.CharField(max_length=120)
    lat = models.FloatField()
    long = models.FloatField()
    score = models.FloatField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["kind", "external_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["owner", "kind", "external_id"],
                name="uniq_marker_owner_kind_external_id",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.kind}:{self.external_id} ({self.owner_id})"


class SensorReading(models.Model):
    station = models.ForeignKey(
        SiteMarker, on_delete=models.CASCADE, related_name="readings"
    )
    recorded_at = models.DateTimeField(default=timezone.now, db_index=True)

    soil_temp = models.FloatField(null=True, blank=True)
    env_temp = models.FloatField(null=True, blank=True)
    flow_rate = models.FloatField(null=True, blank=True)
    humidity = models.FloatField(null=True, blank=True)
    ph = models.FloatField(null=True, blank=True)
    pressure = models.FloatField(null=True, blank=True)
    altitude = models.FloatField(null=True, blank=True)

    class Meta:
        ordering = ["-recorded_at", "-id"]

    def __str__(self) -> str:
        return f"{self.station_id}@{self.recorded_at.isoformat()}"


class Alert(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="alerts",
    )
    external_id = models.CharField(max_length=120, blank=True, default="")
    message = models.TextField()
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return self.message[:60]
