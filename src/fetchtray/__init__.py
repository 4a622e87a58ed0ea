from .api import make_tray_request as make_tray_request
from .api import use_tray_request as use_tray_request
from .config import FetchTrayDebugLevel as FetchTrayDebugLevel
from .controller import TrayRequestController as TrayRequestController
from .controller import TrayRequestState as TrayRequestState
from .exceptions import TrayRequestError as TrayRequestError
from .metadata import DEFAULT_METADATA as DEFAULT_METADATA
from .metadata import TrayRequestMetadata as TrayRequestMetadata
from .pagination import OffsetPagination as OffsetPagination
from .pagination import PagePagination as PagePagination
from .request import TrayEnvironment as TrayEnvironment
from .request import TrayRequest as TrayRequest
from .transport import TrayRequestMock as TrayRequestMock

__all__ = [
    "DEFAULT_METADATA",
    "FetchTrayDebugLevel",
    "OffsetPagination",
    "PagePagination",
    "TrayEnvironment",
    "TrayRequest",
    "TrayRequestController",
    "TrayRequestError",
    "TrayRequestMetadata",
    "TrayRequestMock",
    "TrayRequestState",
    "make_tray_request",
    "use_tray_request",
]
