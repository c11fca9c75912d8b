"""Typed failures raised by the scheduling core.

Every error carries a human-readable ``detail`` and maps to one HTTP status
in ``careflow.main``. None of them are fatal: callers get the kind and the
reason, and the entity involved is left untouched.
"""


class ClinicError(Exception):
    code = "error"
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ClinicError):
    code = "not_found"
    status_code = 404


class ConflictError(ClinicError):
    code = "conflict"
    status_code = 409


class ForbiddenError(ClinicError):
    code = "forbidden"
    status_code = 403


class PreconditionFailedError(ClinicError):
    code = "precondition_failed"
    status_code = 412


class InvalidArgumentError(ClinicError):
    code = "invalid_argument"
    status_code = 400
