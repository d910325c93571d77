class AdapterError(Exception):
    """Base error surfaced to HTTP callers as an OpenAI-style error envelope."""

    status_code = 500
    error_type = "api_error"
    code = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingCredential(AdapterError):
    status_code = 401
    error_type = "authentication_error"
    code = "missing_credential"


class InvalidCredentialFormat(AdapterError):
    status_code = 401
    error_type = "authentication_error"
    code = "invalid_credential_format"


class UnsupportedCredentialType(AdapterError):
    status_code = 401
    error_type = "authentication_error"
    code = "unsupported_credential_type"


class BackendCallFailure(AdapterError):
    status_code = 502
    error_type = "upstream_error"
    code = "backend_call_failed"


class ClientNotConfigured(AdapterError):
    status_code = 503
    error_type = "api_error"
    code = "rpc_client_not_configured"
