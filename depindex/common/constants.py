"""Application constants."""

USER_AGENT = "locality-deprivation-index/0.3 (+research; contact: configured-email)"
STAGES = (
    "fetch",
    "overlay",
    "export",
    "validate",
)
# `all` skips fetch: downloads only happen when asked for explicitly.
DEFAULT_STAGES = ("overlay", "export", "validate")
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "event",
    "status",
    "entity",
    "key",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
INPUT_NAMES = ("localities", "subdivisions", "attributes")
AREA_UNIT_TO_M2 = {
    "m2": 1.0,
    "ha": 10_000.0,
    "km2": 1_000_000.0,
}
# Output vector formats by file suffix, as GDAL driver names.
VECTOR_DRIVERS = {
    ".geojson": "GeoJSON",
    ".json": "GeoJSON",
    ".gpkg": "GPKG",
    ".shp": "ESRI Shapefile",
}

HIGH_DEPRIVATION_DECILES = (9, 10)
SUMMARY_FIELDS = (
    "deprivation_score_mean",
    "deprivation_decile_mean",
    "population_weighted",
    "population_weighted_high_deprivation",
    "population_pct_high_deprivation",
)

# Non-fatal issue codes recorded during an overlay run.
ISSUE_INVALID_GEOMETRY = "INVALID_GEOMETRY"
ISSUE_MISSING_JOIN_ATTRIBUTE = "MISSING_JOIN_ATTRIBUTE"
ISSUE_INVALID_ATTRIBUTE = "INVALID_ATTRIBUTE"
ISSUE_UNDEFINED_WEIGHT = "UNDEFINED_WEIGHT"
ISSUE_ZERO_AREA_OVERLAP = "ZERO_AREA_OVERLAP"
ISSUE_NO_OVERLAPS = "NO_OVERLAPS"
ISSUE_UNDEFINED_AGGREGATE = "UNDEFINED_AGGREGATE"
