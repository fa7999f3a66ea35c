"""Internal domain models."""

from edgepulse.models.bucket import CountryCount, RawHourlyBucket, StatusCount
from edgepulse.models.results import StageResult, StageStatus

__all__ = [
    "CountryCount",
    "RawHourlyBucket",
    "StatusCount",
    "StageResult",
    "StageStatus",
]
