"""Freeze support shared by the hierarchy and header classes."""

from __future__ import annotations


class FrozenStructureError(AttributeError):
    """Raised when a finished (frozen) structure is mutated."""


class Freezable:
    """Mixin that turns attribute assignment into an error after ``freeze``.

    Subclasses convert their mutable collections to tuples in ``_freeze``;
    ``freeze`` then flips the flag so later ``setattr`` calls fail.
    """

    _frozen = False

    def __setattr__(self, name: str, value) -> None:
        if self._frozen:
            raise FrozenStructureError(
                f"{type(self).__name__} is frozen; cannot set {name!r}"
            )
        object.__setattr__(self, name, value)

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise FrozenStructureError(f"{type(self).__name__} is frozen")

    def _freeze(self) -> None:
        """Convert owned collections to immutable ones. Override as needed."""

    def freeze(self):
        if not self._frozen:
            self._freeze()
            object.__setattr__(self, "_frozen", True)
        return self
