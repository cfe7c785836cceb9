"""
Exception hierarchy for the ingestion and generation pipeline.

    StudyMateError
    ├── ExtractionError          bad or corrupt upload, user-correctable
    │   ├── PdfExtractionError
    │   ├── InvalidFileFormatError
    │   └── FileTooLargeError
    ├── GenerationError          model call failed after retries
    │   ├── ArtifactGenerationError
    │   ├── GenerationFailedError
    │   └── StudyMaterialGenerationError
    ├── ConsistencyError         post-write verification failed
    └── LedgerError              user-correctable credit problems
        ├── ResourceNotFoundError
        └── InsufficientCreditsError

Every error carries a stable ``code`` and the HTTP ``status_code`` the API
layer answers with.
"""


class StudyMateError(Exception):
    """Base exception for all pipeline errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


# ============================================
# Extraction
# ============================================


class ExtractionError(StudyMateError):
    """Raised when an upload cannot be turned into generation input."""

    code = "EXTRACTION_FAILED"
    status_code = 400


class PdfExtractionError(ExtractionError):
    code = "PDF_EXTRACTION_FAILED"


class InvalidFileFormatError(ExtractionError):
    code = "INVALID_FILE_FORMAT"


class FileTooLargeError(ExtractionError):
    code = "FILE_TOO_LARGE"
    status_code = 413


# ============================================
# Generation
# ============================================


class GenerationError(StudyMateError):
    """Raised when study content could not be generated."""

    code = "GENERATION_FAILED"
    status_code = 502


class ArtifactGenerationError(GenerationError):
    """A single artifact call failed or returned an unusable response."""

    code = "ARTIFACT_GENERATION_FAILED"

    def __init__(self, artifact: str, message: str):
        super().__init__(f"{artifact} generation failed: {message}")
        self.artifact = artifact


class GenerationFailedError(GenerationError):
    """At least one of the artifacts exhausted its retries."""

    def __init__(self, failures: dict[str, BaseException]):
        self.failures = failures
        details = "; ".join(f"{kind}: {exc}" for kind, exc in failures.items())
        super().__init__(f"Failed to generate {', '.join(failures)} ({details})")


class StudyMaterialGenerationError(GenerationError):
    """Ingestion failed; the upload created for the request was rolled back."""

    code = "STUDY_MATERIAL_GENERATION_FAILED"

    def __init__(self, message: str, upload_id: int | None = None):
        super().__init__(f"Failed to generate study material: {message}")
        self.upload_id = upload_id


# ============================================
# Consistency
# ============================================


class ConsistencyError(StudyMateError):
    """A write was acknowledged but could not be read back."""

    code = "CONSISTENCY_ERROR"
    status_code = 500


# ============================================
# Ledger
# ============================================


class LedgerError(StudyMateError):
    code = "LEDGER_ERROR"
    status_code = 400


class ResourceNotFoundError(LedgerError):
    code = "RESOURCE_NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: int):
        super().__init__(f"{resource} not found: {resource_id}")
        self.resource = resource
        self.resource_id = resource_id


class InsufficientCreditsError(LedgerError):
    code = "INSUFFICIENT_CREDITS"
    status_code = 402

    def __init__(self, required: int, available: int):
        super().__init__(
            f"Insufficient credits: {required} required, {available} available"
        )
        self.required = required
        self.available = available
