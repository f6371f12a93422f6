from watchtrack.services.cache import CacheService
from watchtrack.services.cascade import CascadeEngine
from watchtrack.services.results import StatusChange, StatusUpdateResult
from watchtrack.services.watch_status import WatchStatusService

__all__ = [
    "CacheService",
    "CascadeEngine",
    "StatusChange",
    "StatusUpdateResult",
    "WatchStatusService",
]
