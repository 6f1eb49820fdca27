from dataclasses import dataclass, field
from typing import TypeVar, Generic, Optional, List

T = TypeVar('T')


@dataclass
class ExtractionResult(Generic[T]):
    """What an extraction strategy produced, plus notes for the user.

    Degenerate input is not a failure: an empty table comes back as ``ok``
    with a warning. ``fail`` is reserved for a strategy that cannot run on
    the given source at all.
    """

    value: Optional[T] = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: T) -> 'ExtractionResult[T]':
        return cls(value=value)

    @classmethod
    def fail(cls, error: str) -> 'ExtractionResult[T]':
        return cls(error=error)

    def warn(self, message: str) -> 'ExtractionResult[T]':
        self.warnings.append(message)
        return self

    def unwrap(self) -> T:
        """Extracted value, or ValueError when the strategy could not run."""
        if self.error is not None:
            raise ValueError(self.error)
        return self.value
