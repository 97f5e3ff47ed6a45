"""
SchemaBuilderState model: the full aggregate owned by one builder per dataset.

The state is the persistence boundary of the engine. Hosting services dump it with
``model_dump(mode="json")`` after a session and resume from that dict later.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .field_statistics import FieldStatistics, utc_now


class TypeConflictSample(BaseModel):
    """Example value recorded for a conflicting type."""

    type: str
    value: Any = None


class TypeConflict(BaseModel):
    """
    A field path that has shown more than one non-null type.

    Attributes:
        path: Field path with the conflict
        types: Non-null type -> count observed since the conflict started
        samples: Up to 5 example values of the conflicting types
    """

    path: str
    types: dict[str, int] = Field(default_factory=dict)
    samples: list[TypeConflictSample] = Field(default_factory=list)


class DetectedGeoFields(BaseModel):
    """
    Result of geo-field detection.

    Attributes:
        latitude: Path of the latitude field
        longitude: Path of the longitude field
        combined_field: Path of a field holding both coordinates
        combined_format: "lat,lng", "lng,lat", "lat lng", "lng lat", "[lat,lng]" or "[lng,lat]"
        location_field: Free-text address/location field usable for geocoding
        confidence: Overall coordinate detection confidence (0.0-1.0)
    """

    latitude: str | None = None
    longitude: str | None = None
    combined_field: str | None = None
    combined_format: str | None = None
    location_field: str | None = None
    confidence: float = Field(0.0, ge=0.0, le=1.0)

    @property
    def has_coordinates(self) -> bool:
        return bool(self.latitude or self.longitude or self.combined_field)


class FieldMappings(BaseModel):
    """
    Fields playing a semantic role in event-like records.

    Attributes:
        title_path: Short human-readable name of a record
        description_path: Longer free text about a record
        location_name_path: Venue or place name
        timestamp_path: When the record happened
        latitude_path: Latitude field from geo detection
        longitude_path: Longitude field from geo detection
        location_path: Address or other geocodable location text
    """

    title_path: str | None = None
    description_path: str | None = None
    location_name_path: str | None = None
    timestamp_path: str | None = None
    latitude_path: str | None = None
    longitude_path: str | None = None
    location_path: str | None = None

    @property
    def has_mappings(self) -> bool:
        return any(value is not None for value in self.model_dump().values())


class SchemaBuilderState(BaseModel):
    """
    Aggregate schema inference state for a single dataset.

    Attributes:
        version: Increments when a batch introduces a new field or a type conflict
        field_stats: Field path -> statistics, in first-seen order
        record_count: Total records processed
        batch_count: Total batches processed
        last_updated: When the last batch was applied
        data_samples: FIFO buffer of the most recent raw records
        max_samples: Capacity of data_samples
        detected_id_fields: Paths that look like identifiers
        detected_geo_fields: Geo-field detection result
        type_conflicts: One record per path that has shown several non-null types
        field_mappings: Paths detected for title, description, timestamp and location roles
    """

    version: int = Field(0, ge=0)
    field_stats: dict[str, FieldStatistics] = Field(default_factory=dict)
    record_count: int = Field(0, ge=0)
    batch_count: int = Field(0, ge=0)
    last_updated: datetime = Field(default_factory=utc_now)
    data_samples: list[dict[str, Any]] = Field(default_factory=list)
    max_samples: int = Field(100, gt=0)
    detected_id_fields: list[str] = Field(default_factory=list)
    detected_geo_fields: DetectedGeoFields = Field(default_factory=DetectedGeoFields)
    type_conflicts: list[TypeConflict] = Field(default_factory=list)
    field_mappings: FieldMappings = Field(default_factory=FieldMappings)

    def find_type_conflict(self, path: str) -> TypeConflict | None:
        for conflict in self.type_conflicts:
            if conflict.path == path:
                return conflict
        return None

    class Config:
        json_schema_extra = {
            "example": {
                "version": 2,
                "field_stats": {},
                "record_count": 250,
                "batch_count": 3,
                "data_samples": [{"id": 1, "title": "Concert", "lat": 52.52, "lng": 13.405}],
                "max_samples": 100,
                "detected_id_fields": ["id"],
                "detected_geo_fields": {"latitude": "lat", "longitude": "lng", "confidence": 0.95},
                "type_conflicts": []
            }
        }
