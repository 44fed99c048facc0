import enum


class AppError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(AppError):
    def __init__(self, entity: str, id: str):
        super().__init__(f"{entity} not found: {id}", status_code=404)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, status_code=403)


# ── Field-level validation errors ─────────────────────────────────────────────
# These are collected per field into a KeyValidationError rather than raised
# one at a time, except where a helper (parse_key, a key checker) fails alone.


class PresenceError(AppError):
    def __init__(self, field: str):
        super().__init__(f"{field} can't be blank", status_code=422)
        self.field = field


class LengthError(AppError):
    def __init__(self, field: str, maximum: int):
        super().__init__(f"{field} is too long (maximum is {maximum} characters)", status_code=422)
        self.field = field
        self.maximum = maximum


class InclusionError(AppError):
    def __init__(self, field: str, value: object):
        super().__init__(f"{field} is not included in the list: {value!r}", status_code=422)
        self.field = field
        self.value = value


class UniquenessError(AppError):
    def __init__(self, field: str):
        super().__init__(f"{field} has already been taken", status_code=422)
        self.field = field


class ImmutableFieldChangedError(AppError):
    def __init__(self, field: str):
        super().__init__(f"{field} may not be changed", status_code=422)
        self.field = field


class MalformedKeyError(AppError):
    def __init__(self, message: str = "Key is corrupted or is not a valid SSH public key"):
        super().__init__(message, status_code=422)


class ExternalToolError(AppError):
    """The key inspection tool could not run (missing binary, timeout)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=503)


class ConflictReason(str, enum.Enum):
    OWNED_BY_REQUESTER = "OWNED_BY_REQUESTER"
    OWNED_BY_OTHER = "OWNED_BY_OTHER"
    ADMINISTRATOR_KEY = "ADMINISTRATOR_KEY"
    OWNED_BY_SOMEONE = "OWNED_BY_SOMEONE"


class KeyConflictError(AppError):
    """Payload already used by another active key. Detail depends on who asks."""

    def __init__(
        self,
        reason: ConflictReason,
        *,
        title: str | None = None,
        owner_login: str | None = None,
    ):
        if reason == ConflictReason.OWNED_BY_REQUESTER:
            message = f"Key is already in use by you as '{title}'"
        elif reason == ConflictReason.OWNED_BY_OTHER:
            message = f"Key is already in use by user '{owner_login}' as '{title}'"
        elif reason == ConflictReason.ADMINISTRATOR_KEY:
            message = "Key is identical to the gitolite administrator key"
        else:
            message = "Key is already in use by someone else"
        super().__init__(message, status_code=409)
        self.reason = reason
        self.title = title
        self.owner_login = owner_login


class KeyValidationError(AppError):
    """All field errors collected during one validation pass."""

    def __init__(self, errors: dict[str, list[AppError]]):
        fields = ", ".join(sorted(errors))
        super().__init__(f"SSH key is invalid ({fields})", status_code=422)
        self.errors = errors

    def has(self, field: str, error_type: type[AppError]) -> bool:
        return any(isinstance(e, error_type) for e in self.errors.get(field, []))

    def messages(self) -> dict[str, list[str]]:
        return {field: [e.message for e in errs] for field, errs in self.errors.items()}
