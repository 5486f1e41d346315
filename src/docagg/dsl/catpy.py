"""
catpy.py - Small monadic foundations for docagg pipelines.

- Monad: the bind/pure typeclass shared by the concrete types below
- Maybe (Just/Nothing): field-path resolution that may find nothing
- Result (Ok/Err): stage outcomes that keep *why* a stage failed
- PipelineError: the error payload carried by Err inside a pipeline
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar
from abc import ABC, abstractmethod

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


# ---------------------------------------------------------------------------
# Core typeclass
# ---------------------------------------------------------------------------

class Monad(ABC, Generic[T]):
    """
    A structure that supports sequencing computations that produce wrapped
    values.

    Laws (for all x and functions f: a -> m b, g: b -> m c):
      1) Left identity:  pure(x).bind(f) == f(x)
      2) Right identity: m.bind(pure)    == m
      3) Associativity:  m.bind(f).bind(g) == m.bind(lambda x: f(x).bind(g))

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a type-class.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """

    @classmethod
    @abstractmethod
    def pure(cls, x: U) -> "Monad[U]":
        """Lift a value into the monadic context."""
        raise NotImplementedError

    @abstractmethod
    def bind(self, f: Callable[[T], "Monad[U]"]) -> "Monad[U]":
        """Chain a function that returns a wrapped value (aka flatMap)."""
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Maybe
# ---------------------------------------------------------------------------

class Maybe(Monad[T], ABC):
    """
    Optional value: either Just(value) or Nothing().

    Used for field lookups, where ``None`` is a legitimate stored value and
    cannot double as "not found".

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a monad.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """

    @classmethod
    def pure(cls, x: U) -> "Maybe[U]":
        return Just(x)

    def is_just(self) -> bool:
        return isinstance(self, Just)

    def is_nothing(self) -> bool:
        return isinstance(self, Nothing)

    def get_or_else(self, default: T) -> T:
        """Get the value or return default if Nothing."""
        if isinstance(self, Just):
            return self.value
        return default


@dataclass(frozen=True)
class Just(Maybe[T]):
    """A present value.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a monad.
    ::: This is stateless.
    """
    value: T

    def bind(self, f: Callable[[T], Maybe[U]]) -> Maybe[U]:
        return f(self.value)

    def __repr__(self) -> str:
        return f"Just({self.value!r})"


@dataclass(frozen=True)
class Nothing(Maybe[Any]):
    """An absent value.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a monad.
    ::: This is stateless.
    """

    def bind(self, f: Callable[[Any], Maybe[U]]) -> Maybe[U]:
        return self

    def __repr__(self) -> str:
        return "Nothing()"


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

class Result(Monad[T], ABC, Generic[T, E]):
    """
    Tagged union for success or failure with an error value.
    - Ok(value)
    - Err(error)

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a monad.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """

    @classmethod
    def pure(cls, x: U) -> "Result[U, E]":
        return Ok(x)

    def is_ok(self) -> bool:
        return isinstance(self, Ok)

    def is_err(self) -> bool:
        return isinstance(self, Err)

    def unwrap(self) -> T:
        """Get the value or raise if Err."""
        if isinstance(self, Ok):
            return self.value
        raise ValueError(f"Cannot unwrap Err: {self}")


@dataclass(frozen=True)
class Ok(Result[T, E]):
    """A successful result.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a monad.
    ::: This is stateless.
    """
    value: T

    def bind(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        return f(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True)
class Err(Result[Any, E]):
    """A failed result with error information.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a monad.
    ::: This is stateless.
    """
    error: E

    def bind(self, f: Callable[[Any], Result[U, E]]) -> Result[U, E]:
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# ---------------------------------------------------------------------------
# Pipeline Error Type
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PipelineError:
    """Error that occurred while running a pipeline stage.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a value-object.
    """
    stage: str
    message: str
    cause: Optional[Exception] = None

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


# Type alias for pipeline results
PipelineResult = Result[T, PipelineError]


def pipeline_ok(value: T) -> PipelineResult[T]:
    """Create a successful pipeline result."""
    return Ok(value)


def pipeline_err(stage: str, message: str, cause: Optional[Exception] = None) -> PipelineResult[Any]:
    """Create a failed pipeline result."""
    return Err(PipelineError(stage, message, cause))


__all__ = [
    "Monad",
    "Maybe", "Just", "Nothing",
    "Result", "Ok", "Err",
    "PipelineError", "PipelineResult",
    "pipeline_ok", "pipeline_err",
]
