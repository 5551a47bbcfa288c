"""Client for the Enphase Entrez cloud service and local Envoy gateways."""

from .const import __version__
from .dispatcher import EndpointDescriptor, RequestDispatcher
from .entrez import Entrez
from .envoy import Envoy
from .exceptions import (
    AuthNetworkError,
    ConnectionFailedError,
    DecodeError,
    DeviceNotCommissionedError,
    EnphaseAuthError,
    EnphaseError,
    EnphaseRequestError,
    EnphaseTransportError,
    InvalidCredentialsError,
    MissingCredentialsError,
    NotAuthenticatedError,
    RequestRejectedError,
    RequestTimeoutError,
    RetriableError,
    TokenExpiredError,
    TokenRejectedError,
    UnexpectedStatusError,
)
from .gateway import EnvoyGateway, GatewayState
from .manager import EnvoyTokenManager
from .models import (
    CloudSession,
    ConsumptionSnapshot,
    Credentials,
    GatewayBinding,
    InverterReading,
    PowerState,
    PowerStatus,
    ProductionSnapshot,
    SystemInfo,
    Token,
)

__all__ = [
    "AuthNetworkError",
    "CloudSession",
    "ConnectionFailedError",
    "ConsumptionSnapshot",
    "Credentials",
    "DecodeError",
    "DeviceNotCommissionedError",
    "EndpointDescriptor",
    "EnphaseAuthError",
    "EnphaseError",
    "EnphaseRequestError",
    "EnphaseTransportError",
    "Entrez",
    "Envoy",
    "EnvoyGateway",
    "EnvoyTokenManager",
    "GatewayBinding",
    "GatewayState",
    "InvalidCredentialsError",
    "InverterReading",
    "MissingCredentialsError",
    "NotAuthenticatedError",
    "PowerState",
    "PowerStatus",
    "ProductionSnapshot",
    "RequestDispatcher",
    "RequestRejectedError",
    "RequestTimeoutError",
    "RetriableError",
    "SystemInfo",
    "Token",
    "TokenExpiredError",
    "TokenRejectedError",
    "UnexpectedStatusError",
    "__version__",
]
