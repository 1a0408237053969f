"""Record validation run before every flush."""

from typing import Any

from sqlalchemy import event
from sqlalchemy.orm import Session


class Errors(dict[str, list[str]]):
    """Field name to error messages."""

    def add(self, field: str, message: str) -> None:
        self.setdefault(field, []).append(message)

    def merge(self, other: "Errors", prefix: str) -> None:
        for field, messages in other.items():
            for message in messages:
                self.add(f"{prefix}.{field}", message)

    def full_messages(self) -> list[str]:
        return [f"{field} {message}" for field, messages in self.items() for message in messages]


class RecordInvalid(Exception):
    """Raised when a record fails validation on save."""

    def __init__(self, record: Any, errors: Errors) -> None:
        self.record = record
        self.errors = errors
        super().__init__(
            f"Validation failed for {type(record).__name__}: " + ", ".join(errors.full_messages())
        )


class Validatable:
    """Mixin for models with field-level validations.

    Subclasses implement ``validate`` and may override ``before_validation``
    for normalization that has to happen first.
    """

    def before_validation(self) -> None:
        pass

    def validate(self, errors: Errors) -> None:
        raise NotImplementedError

    @property
    def errors(self) -> Errors:
        """Errors from the most recent validation run."""
        errors = getattr(self, "_errors", None)
        if errors is None:
            errors = self._errors = Errors()
        return errors

    def validation_errors(self) -> Errors:
        """Run normalization and validations, returning any errors."""
        self.before_validation()
        errors = self._errors = Errors()
        self.validate(errors)
        return errors

    def is_valid(self) -> bool:
        return not self.validation_errors()


@event.listens_for(Session, "before_flush")
def _validate_pending_records(session: Session, flush_context: Any, instances: Any) -> None:
    """Refuse to flush new or modified records that fail validation."""
    for obj in list(session.new) + list(session.dirty):
        if not isinstance(obj, Validatable):
            continue
        if obj in session.dirty and not session.is_modified(obj):
            continue
        errors = obj.validation_errors()
        if errors:
            raise RecordInvalid(obj, errors)
