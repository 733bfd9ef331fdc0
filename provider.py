"""
Small injector the demo pages are wired through.

Classes are registered by name; ``make`` resolves aliases, returns shared
instances, and fills constructor parameters from defined params or by
making annotated types.
"""

import inspect
import logging

logger = logging.getLogger(__name__)


class InjectionError(Exception):
    pass


class Provider:
    def __init__(self, classes=None) -> None:
        self._classes = dict(classes or {})
        self._aliases: dict = {}
        self._shares: dict = {}
        self._params: dict = {}
        self._delegates: dict = {}
        self._prepares: dict = {}

    # --- Registration ---------------------------------------------------------

    def alias(self, original: str, alias: str) -> None:
        if original in self._shares and self._shares[original] is not None:
            raise InjectionError(f"Cannot alias '{original}': an instance is already shared")
        self._aliases[original] = alias

    def share(self, obj) -> None:
        if isinstance(obj, str):
            self._shares.setdefault(self._resolve(obj), None)
        else:
            self._shares[type(obj).__name__] = obj

    def define_param(self, name: str, value) -> None:
        self._params[name] = value

    def delegate(self, name: str, factory) -> None:
        if not callable(factory):
            raise InjectionError(f"Delegate for '{name}' is not callable")
        self._delegates[name] = factory

    def prepare(self, name: str, callback) -> None:
        self._prepares.setdefault(name, []).append(callback)

    # --- Resolution -----------------------------------------------------------

    def _resolve(self, name: str) -> str:
        seen = set()
        while name in self._aliases:
            if name in seen:
                raise InjectionError(f"Cyclic alias for '{name}'")
            seen.add(name)
            name = self._aliases[name]
        return name

    def _knows(self, name: str) -> bool:
        name = self._resolve(name)
        return name in self._classes or name in self._delegates or self._shares.get(name) is not None

    def make(self, name: str):
        name = self._resolve(name)
        if self._shares.get(name) is not None:
            return self._shares[name]

        if name in self._delegates:
            obj = self._call(self._delegates[name])
        elif name in self._classes:
            obj = self._call(self._classes[name])
        else:
            raise InjectionError(f"Could not make '{name}': nothing is registered under that name")

        for callback in self._prepares.get(name, []):
            callback(obj, self)

        if name in self._shares:
            self._shares[name] = obj
        logger.debug("Made %s for %s", type(obj).__name__, name)
        return obj

    def execute(self, target):
        """Call ``target`` with injected arguments.

        ``target`` is a callable or a ``[name, method]`` pair; a string name is
        made first.
        """
        if isinstance(target, (list, tuple)):
            owner, method = target
            if isinstance(owner, str):
                owner = self.make(owner)
            target = getattr(owner, method)
        return self._call(target)

    def _call(self, func):
        kwargs = {}
        for param in inspect.signature(func).parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            if param.name in self._params:
                kwargs[param.name] = self._params[param.name]
                continue

            annotation = param.annotation
            if annotation is not param.empty:
                type_name = annotation if isinstance(annotation, str) else getattr(annotation, "__name__", None)
                if type_name and self._knows(type_name):
                    kwargs[param.name] = self.make(type_name)
                    continue

            if param.default is param.empty:
                raise InjectionError(
                    f"No definition available for parameter '{param.name}' of {getattr(func, '__qualname__', func)}"
                )
        return func(**kwargs)
