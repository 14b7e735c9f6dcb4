"""Error taxonomy shared by the store, document generator and mail relay."""


class ExpediterError(Exception):
    """Base class; ``status_code`` is what the JSON error handler returns."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {'error': self.message}


class ValidationError(ExpediterError):
    """A required field is missing or a value is out of range."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data['field'] = self.field
        return data


class ConstraintViolation(ExpediterError):
    """A delete or update was blocked by a referential rule."""

    status_code = 409


class NotFoundError(ExpediterError):
    status_code = 404


class DocumentGenerationError(ExpediterError):
    """PDF layout failed."""

    status_code = 500


class DeliveryError(ExpediterError):
    """The mail relay rejected or failed to send a message."""

    status_code = 502
