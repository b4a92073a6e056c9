"""JSON-RPC error type raised by tool handlers and the method dispatcher."""
from typing import Any, Optional

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class RpcError(Exception):
    """An error that is reported to the caller as a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


def method_not_found(message: str, data: Optional[Any] = None) -> RpcError:
    return RpcError(METHOD_NOT_FOUND, message, data)


def invalid_params(message: str, data: Optional[Any] = None) -> RpcError:
    return RpcError(INVALID_PARAMS, message, data)


def internal_error(message: str, data: Optional[Any] = None) -> RpcError:
    return RpcError(INTERNAL_ERROR, message, data)
