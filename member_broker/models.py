"""
Members as seen by the broker: the lookup result and the inbound request bodies.
Inbound fields are optional at parse time; required-ness is checked by the routes so a
missing or empty field gets the broker's own 400 instead of a 422.
"""
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class Member:
    """A member record found in Umbraco."""

    id: str
    member_id: str
    email: str
    name: str
    groups: tuple[str, ...] = field(default_factory=tuple)


class MemberUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    email: str | None = None
    is_vip: bool | None = Field(default=None, alias="isVip")

    def missing(self) -> bool:
        return not self.name or not self.email


class MemberCreate(MemberUpdate):
    member_id: str | None = Field(default=None, alias="memberId")

    def missing(self) -> bool:
        return super().missing() or not self.member_id
