"""
Member operations against the Umbraco Management API.
Every operation resolves the Umbraco member id by looking the member up by memberId
(the Umbraco username) first; ids are never built locally.
"""
import logging
import uuid

import httpx

from member_broker.errors import ConflictError, DownstreamError, NotFoundError
from member_broker.models import Member
from member_broker.token_provider import AccessTokenProvider
from member_broker.translator import build_member_resource, member_from_item

logger = logging.getLogger(__name__)

API_PATH = "/umbraco/management/api/v1"


def _error_details(r: httpx.Response) -> dict | str:
    """Response body for logging: JSON when the downstream sent JSON, else the status text."""
    if r.headers.get("content-type", "").split(";")[0].strip().endswith("json"):
        try:
            return r.json()
        except ValueError:
            pass
    return r.text or r.reason_phrase


def _downstream_error(r: httpx.Response) -> DownstreamError:
    """Problem-details detail/title when present, otherwise the HTTP status text."""
    details = _error_details(r)
    description = r.reason_phrase
    if isinstance(details, dict):
        description = details.get("detail") or details.get("title") or description
    return DownstreamError(r.status_code, description)


class MemberDirectoryClient:
    """Lookup, create, update and delete Umbraco members by memberId."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        token_provider: AccessTokenProvider,
        *,
        member_type_id: str,
        regular_group_id: str,
        vip_group_id: str,
    ):
        self._http = http_client
        self._api = f"{base_url.rstrip('/')}{API_PATH}"
        self._tokens = token_provider
        self._member_type_id = member_type_id
        self._regular_group_id = regular_group_id
        self._vip_group_id = vip_group_id

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        access_token = await self._tokens.get_access_token()
        headers = {"Authorization": f"Bearer {access_token}", **kwargs.pop("headers", {})}
        try:
            return await self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise DownstreamError(502, "Member management API unreachable") from e

    def _resource(self, member_id: str, name: str, email: str, is_vip: bool) -> dict:
        return build_member_resource(
            member_id,
            name,
            email,
            is_vip,
            member_type_id=self._member_type_id,
            regular_group_id=self._regular_group_id,
            vip_group_id=self._vip_group_id,
        )

    async def lookup(self, member_id: str) -> Member | None:
        """
        Member whose username equals member_id, or None. Only the first filter hit is
        requested, so a contains-match on another username also yields None.
        """
        r = await self._request(
            "GET",
            f"{self._api}/filter/member",
            params={"filter": member_id, "take": 1},
            headers={"Accept": "application/json"},
        )
        if not r.is_success:
            logger.error("Could not get member with ID '%s': %s", member_id, _error_details(r))
            raise _downstream_error(r)

        try:
            result = r.json()
        except ValueError:
            result = None
        if not isinstance(result, dict) or not isinstance(result.get("items", []), list):
            logger.error("Invalid member filter response for ID '%s': %s", member_id, r.text[:500])
            raise DownstreamError(502, "Invalid response from member management API")

        items = result.get("items") or []
        if result.get("total", len(items)) == 0 or not items:
            return None
        # the filter is a contains-match; only an exact username is this member
        if not isinstance(items[0], dict) or items[0].get("username") != member_id:
            return None
        try:
            return member_from_item(items[0])
        except KeyError as e:
            logger.error("Member filter item for ID '%s' has no %s", member_id, e)
            raise DownstreamError(502, "Invalid response from member management API") from e

    async def create(self, member_id: str, name: str, email: str, is_vip: bool = False) -> None:
        if await self.lookup(member_id) is not None:
            logger.info("Member with ID '%s' already exists, aborting member creation.", member_id)
            raise ConflictError()

        body = self._resource(member_id, name, email, is_vip)
        # Umbraco requires an initial password; members never log in with it
        body["password"] = str(uuid.uuid4())

        r = await self._request("POST", f"{self._api}/member", json=body)
        if not r.is_success:
            logger.error("Could not create member with ID '%s': %s", member_id, _error_details(r))
            raise _downstream_error(r)
        logger.info("Member with ID '%s' was successfully created.", member_id)

    async def update(self, member_id: str, name: str, email: str, is_vip: bool = False) -> None:
        member = await self.lookup(member_id)
        if member is None:
            logger.info("Member with ID '%s' did not exist, aborting member update.", member_id)
            raise NotFoundError()

        body = self._resource(member_id, name, email, is_vip)
        r = await self._request("PUT", f"{self._api}/member/{member.id}", json=body)
        if not r.is_success:
            logger.error("Could not update member with ID '%s': %s", member_id, _error_details(r))
            raise _downstream_error(r)
        logger.info("Member with ID '%s' was successfully updated.", member_id)

    async def delete(self, member_id: str) -> None:
        member = await self.lookup(member_id)
        if member is None:
            logger.info("Member with ID '%s' did not exist, aborting member deletion.", member_id)
            raise NotFoundError()

        r = await self._request("DELETE", f"{self._api}/member/{member.id}")
        if not r.is_success:
            logger.error("Could not delete member with ID '%s': %s", member_id, _error_details(r))
            raise _downstream_error(r)
        logger.info("Member with ID '%s' was successfully deleted.", member_id)
