"""Python client for the Workcraft stronghold task orchestrator."""

__version__ = "0.1.0"

from .channel import ConnectionState, UpdateChannel
from .client import WorkcraftClient
from .config import WorkcraftConfig
from .credentials import (
    CredentialManager,
    HashedKeyCredentialStrategy,
    JwtCredentialStrategy,
)
from .errors import (
    ConnectivityError,
    DecodeError,
    NotInitializedError,
    RequestFailedError,
    StorageUnavailableError,
    WorkcraftClientError,
    WorkcraftConnectionError,
    WorkcraftHandshakeError,
    WorkcraftTimeout,
)
from .http import GatewayResponse, RequestGateway
from .models import (
    Peon,
    PeonStatus,
    Task,
    TaskPayload,
    TaskStatus,
    Update,
    UpdateKind,
    decode_update,
)
from .registry import SubscriberRegistry
from .storage import StrongholdDatabase

__all__ = [
    "ConnectionState",
    "ConnectivityError",
    "CredentialManager",
    "DecodeError",
    "GatewayResponse",
    "HashedKeyCredentialStrategy",
    "JwtCredentialStrategy",
    "NotInitializedError",
    "Peon",
    "PeonStatus",
    "RequestFailedError",
    "RequestGateway",
    "StorageUnavailableError",
    "StrongholdDatabase",
    "SubscriberRegistry",
    "Task",
    "TaskPayload",
    "TaskStatus",
    "UpdateChannel",
    "Update",
    "UpdateKind",
    "WorkcraftClient",
    "WorkcraftClientError",
    "WorkcraftConfig",
    "WorkcraftConnectionError",
    "WorkcraftHandshakeError",
    "WorkcraftTimeout",
    "__version__",
    "decode_update",
]
