from typing import TYPE_CHECKING, Generic, TypeVar

from pgque.core.exceptions import UnknownJobType

if TYPE_CHECKING:
    from pgque.jobs.job import Job

# Base registry implementation
T = TypeVar("T")


class Registry(Generic[T]):
    """Generic registry for pluggable implementations."""

    def __init__(self, name: str):
        self.name = name
        self._implementations: dict[str, T] = {}
        self._frozen = False

    def register(self, name: str, implementation: T) -> None:
        """Register an implementation with a given name."""
        if self._frozen:
            raise RuntimeError(
                f"Cannot register '{name}': {self.name.lower()} registry is frozen "
                "after startup"
            )
        self._implementations[name] = implementation

    def get(self, name: str) -> T:
        """Get an implementation by name."""
        if name not in self._implementations:
            raise KeyError(
                f"No {self.name.lower()} implementation registered with name: {name}"
            )
        return self._implementations[name]

    def find(self, name: str) -> T | None:
        """Get an implementation by name, or None when nothing is registered."""
        return self._implementations.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._implementations

    def __len__(self) -> int:
        return len(self._implementations)

    def list(self) -> list[str]:
        """List all registered implementation names."""
        return list(self._implementations.keys())

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if the registry is frozen."""
        return self._frozen


class JobRegistry(Registry["type[Job]"]):
    """
    Maps the ``type`` column of a job row to the class that runs it.

    Lookups fail closed: a row whose type was never registered raises
    ``UnknownJobType`` instead of being guessed at.
    """

    def __init__(self):
        super().__init__("Job")

    def register_job(self, job_cls: "type[Job]") -> "type[Job]":
        """Register a Job subclass under its type identifier. Usable as a decorator."""
        type_name = job_cls.type_name()
        existing = self.find(type_name)
        if existing is not None and existing is not job_cls:
            raise ValueError(
                f"Job type '{type_name}' is already registered to {existing.__qualname__}"
            )
        self.register(type_name, job_cls)
        return job_cls

    def get(self, name: str) -> "type[Job]":
        try:
            return super().get(name)
        except KeyError:
            raise UnknownJobType(name) from None


# Global registry instance, populated at startup by registry_init
job_registry = JobRegistry()
