from typing import Any, Callable, Dict, List, Type, TypeVar

T = TypeVar("T")


class Registry:
    """A name -> class registry for pluggable collaborators."""

    def __init__(self, name: str):
        """
        Initializes the registry.

        Args:
            name: The name of the registry (e.g., "source").
        """
        self._name = name
        self._components: Dict[str, Type[Any]] = {}

    def register(self, name: str) -> Callable[[Type[T]], Type[T]]:
        """
        A decorator to register a class under a given name.

        Raises:
            ValueError: If the name is already registered.
        """
        def decorator(cls: Type[T]) -> Type[T]:
            if name in self._components:
                raise ValueError(f"Component '{name}' already registered in '{self._name}' registry.")
            self._components[name] = cls
            return cls
        return decorator

    def get(self, name: str) -> Type[Any]:
        """
        Retrieves a class by its name.

        Raises:
            KeyError: If the name is not registered.
        """
        if name not in self._components:
            raise KeyError(
                f"Component '{name}' not found in '{self._name}' registry. "
                f"Available: {self.available()}"
            )
        return self._components[name]

    def create(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Instantiates the component registered under `name`."""
        return self.get(name)(*args, **kwargs)

    def available(self) -> List[str]:
        return sorted(self._components)

    def __contains__(self, name: str) -> bool:
        return name in self._components


source_registry = Registry("source")
