from studymate.models.user import User
from studymate.models.upload import Upload, SourceType
from studymate.models.study_material import StudyMaterial, StudyMode
from studymate.models.usage_record import UsageRecord

__all__ = [
    "User",
    "Upload",
    "SourceType",
    "StudyMaterial",
    "StudyMode",
    "UsageRecord",
]
