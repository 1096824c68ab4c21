"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class ContractError(PipelineError):
    """Raised when structural preconditions or output contracts are broken."""

    error_code = "CONTRACT_ERROR"


class EmptyCollectionError(ContractError):
    """Raised when a required geometry collection has no usable entries."""

    error_code = "EMPTY_COLLECTION"


class DuplicateKeyError(ContractError):
    """Raised when a primary key occurs more than once within a collection."""

    error_code = "DUPLICATE_KEY"


class StageError(PipelineError):
    """Raised for stage failures that should halt in strict mode."""

    error_code = "STAGE_ERROR"


class OverlayError(PipelineError):
    """Per-entity failure that the overlay recovers from by excluding the entity."""

    error_code = "OVERLAY_ERROR"

    def __init__(self, message: str, *, entity: str, key: object) -> None:
        super().__init__(message)
        self.entity = entity
        self.key = key


class InvalidGeometryError(OverlayError):
    error_code = "INVALID_GEOMETRY"


class UndefinedWeightError(OverlayError):
    error_code = "UNDEFINED_WEIGHT"
