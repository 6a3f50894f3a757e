"""Typed caller identity passed into every core operation."""

from dataclasses import dataclass

from decluttit.domain.enums import UserRole, VerificationLevel


@dataclass(frozen=True)
class ActorContext:
    """Who is calling. Built by the HTTP layer from the bearer token."""

    user_id: str
    verification_level: VerificationLevel = VerificationLevel.BASIC
    role: UserRole = UserRole.MEMBER

    @property
    def is_arbitrator(self) -> bool:
        return self.role == UserRole.ARBITRATOR

    @classmethod
    def from_user(cls, user) -> "ActorContext":
        return cls(
            user_id=user.id,
            verification_level=VerificationLevel(user.verification_level),
            role=UserRole(user.role),
        )
