class ServiceError(RuntimeError):
    """Recoverable service error (validation/existence/admission/etc.)."""

    status_code = 400
    code = "bad_request"

    def to_payload(self) -> dict:
        return {"error": self.code}


class ValidationError(ServiceError):
    status_code = 400
    code = "validation_failed"

    def __init__(self, errors: dict | str):
        if isinstance(errors, str):
            errors = {"__all__": errors}
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))

    def to_payload(self) -> dict:
        return {"error": self.code, "errors": self.errors}


class NotFound(ServiceError):
    status_code = 404
    code = "not_found"


class AuthorizationDenied(ServiceError):
    status_code = 403
    code = "forbidden"


class AdmissionDenied(ServiceError):
    """Rate/cooldown rejection. The reason is user-facing and actionable."""

    status_code = 429
    code = "admission_denied"

    def __init__(self, reason: str, retry_after_minutes: int | None = None):
        self.reason = reason
        self.retry_after_minutes = retry_after_minutes
        super().__init__(reason)

    def to_payload(self) -> dict:
        payload = {"error": self.reason}
        if self.retry_after_minutes is not None:
            payload["retryAfterMinutes"] = self.retry_after_minutes
        return payload
