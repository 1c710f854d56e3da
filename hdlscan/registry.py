"""Keyed registry for parser strategies and generators.

Parser strategies (``fast``, ``slang``) and module generators
(``instantiation``, ``testbench``, ``markdown``, ``csv``) register
themselves with a decorator, and the command line picks one by key
without an if-else chain.  New strategies or output formats are added
by registering another class.

Example usage::

    generator_registry = Registry("generator")

    @generator_registry.register("instantiation")
    class InstantiationGenerator(ModuleGenerator):
        ...

    gen = generator_registry.create("instantiation", with_comments=True)
    print(gen.generate(module))
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Type, TypeVar

T = TypeVar("T")


class Registry:
    """Maps string keys to classes and builds instances on demand."""

    def __init__(self, name: str = "registry") -> None:
        """Initialize the registry.

        Args:
            name: Human-readable name used in error messages.
        """
        self._name = name
        self._items: Dict[str, Type[Any]] = {}

    def register(self, key: str) -> Callable[[Type[T]], Type[T]]:
        """Class decorator registering the decorated class under ``key``.

        Raises:
            ValueError: If ``key`` is already taken.
        """
        def decorator(cls: Type[T]) -> Type[T]:
            if key in self._items:
                raise ValueError(
                    f"{self._name}: key '{key}' already registered "
                    f"to {self._items[key].__name__}"
                )
            self._items[key] = cls
            return cls
        return decorator

    def get(self, key: str) -> Type[Any]:
        """Return the class registered under ``key``.

        Raises:
            KeyError: If ``key`` is not registered.
        """
        if key not in self._items:
            available = ", ".join(sorted(self._items))
            raise KeyError(
                f"{self._name}: unknown key '{key}'. "
                f"Available: {available}"
            )
        return self._items[key]

    def create(self, key: str, **kwargs: Any) -> Any:
        """Instantiate the class registered under ``key`` with ``kwargs``."""
        return self.get(key)(**kwargs)

    def keys(self) -> List[str]:
        """Registered keys in registration order (handy for argparse choices)."""
        return list(self._items)

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)
