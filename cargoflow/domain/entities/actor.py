"""Actor — the already-authenticated caller of an engine operation."""

from dataclasses import dataclass

from cargoflow.domain.value_objects.enums import Role


@dataclass(frozen=True)
class Actor:
    role: Role | str
    id: str | None = None

    @property
    def known_role(self) -> Role | None:
        """The role as a ``Role`` member, or None when it is not one we know."""
        try:
            return Role(self.role)
        except ValueError:
            return None
