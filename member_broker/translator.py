"""
Mapping between broker members and Umbraco member resources.
The only module that knows the Umbraco member JSON shape.
"""
from datetime import datetime, timezone
from email.utils import format_datetime

from member_broker.models import Member

LAST_SYNC_ALIAS = "lastSyncMessage"


def build_member_resource(
    member_id: str,
    name: str,
    email: str,
    is_vip: bool,
    *,
    member_type_id: str,
    regular_group_id: str,
    vip_group_id: str,
    synced_at: datetime | None = None,
) -> dict:
    """
    Umbraco member body for create/update. Members are always approved and always in the
    regular group; VIP members are in the VIP group too.
    """
    groups = [regular_group_id, vip_group_id] if is_vip else [regular_group_id]
    synced_at = synced_at or datetime.now(timezone.utc)
    return {
        "email": email,
        "username": member_id,
        "memberType": {"id": member_type_id},
        "isApproved": True,
        "groups": groups,
        "values": [
            {
                "culture": None,
                "segment": None,
                "alias": LAST_SYNC_ALIAS,
                "value": f"Last update: {format_datetime(synced_at.astimezone(timezone.utc), usegmt=True)}",
            }
        ],
        "variants": [{"culture": None, "segment": None, "name": name}],
    }


def member_from_item(item: dict) -> Member:
    """Member from one item of the member filter response."""
    variants = item.get("variants") or [{}]
    return Member(
        id=item["id"],
        member_id=item.get("username", ""),
        email=item.get("email", ""),
        name=variants[0].get("name", ""),
        groups=tuple(item.get("groups") or ()),
    )
