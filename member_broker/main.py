"""
Member Broker: minimal member REST API in front of the Umbraco Management API.
POST /member, PUT /member/{memberId}, DELETE /member/{memberId}. Port 3000 by default.
"""
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from member_broker.config import (
    CORS_ORIGINS,
    HTTP_TIMEOUT,
    LOG_LEVEL,
    PORT,
    TOKEN_LEEWAY,
    UMBRACO_CLIENT_ID,
    UMBRACO_CLIENT_SECRET,
    UMBRACO_HOST,
    UMBRACO_MEMBER_GROUP_REGULAR_ID,
    UMBRACO_MEMBER_GROUP_VIP_ID,
    UMBRACO_MEMBER_TYPE_ID,
    UMBRACO_TOKEN_URL,
)
from member_broker.directory import MemberDirectoryClient
from member_broker.errors import MemberBrokerError, ValidationError
from member_broker.models import MemberCreate, MemberUpdate
from member_broker.token_provider import AccessTokenProvider

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """One HTTP client, token provider and directory client for the whole process."""
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as http_client:
        tokens = AccessTokenProvider(
            http_client,
            UMBRACO_TOKEN_URL,
            UMBRACO_CLIENT_ID,
            UMBRACO_CLIENT_SECRET,
            expiry_leeway=TOKEN_LEEWAY,
        )
        app.state.directory = MemberDirectoryClient(
            http_client,
            UMBRACO_HOST,
            tokens,
            member_type_id=UMBRACO_MEMBER_TYPE_ID,
            regular_group_id=UMBRACO_MEMBER_GROUP_REGULAR_ID,
            vip_group_id=UMBRACO_MEMBER_GROUP_VIP_ID,
        )
        yield


app = FastAPI(title="Member Broker", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MemberBrokerError)
async def member_broker_error_handler(request: Request, exc: MemberBrokerError):
    return PlainTextResponse(exc.description, status_code=exc.status)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # Body not JSON or wrongly typed fields: same 400 as a missing property
    logger.debug("Rejected request body on %s: %s", request.url.path, exc.errors())
    err = ValidationError()
    return PlainTextResponse(err.description, status_code=err.status)


def get_directory(request: Request) -> MemberDirectoryClient:
    """Dependency: the process-wide directory client created in lifespan."""
    return request.app.state.directory


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "member_broker"}


@app.post("/member")
async def create_member(body: MemberCreate, directory: MemberDirectoryClient = Depends(get_directory)):
    if body.missing():
        raise ValidationError()
    await directory.create(body.member_id, body.name, body.email, body.is_vip or False)
    return Response(status_code=200)


@app.put("/member/{member_id}")
async def update_member(
    member_id: str,
    body: MemberUpdate,
    directory: MemberDirectoryClient = Depends(get_directory),
):
    if body.missing():
        raise ValidationError()
    await directory.update(member_id, body.name, body.email, body.is_vip or False)
    return Response(status_code=200)


@app.delete("/member/{member_id}")
async def delete_member(member_id: str, directory: MemberDirectoryClient = Depends(get_directory)):
    await directory.delete(member_id)
    return Response(status_code=200)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger.info("The service is running on http://localhost:%s.", PORT)
    uvicorn.run(app, host="127.0.0.1", port=PORT)
