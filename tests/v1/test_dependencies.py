# tests/v1/test_dependencies.py
"""Tests for API dependencies and error translation."""

from datetime import timedelta

import pytest
from fastapi import status

from srm_collab.api.errors import STATUS_BY_KIND, backend_error_handler, status_for
from srm_collab.core.errors import (
    AuthError,
    BackendConnectionError,
    BackendError,
    ConstraintError,
    DuplicateMutationError,
    ForbiddenError,
    RecordNotFoundError,
    StorageError,
)
from srm_collab.core.security import create_access_token
from tests.conftest import ALICE


def test_missing_token_is_rejected(client) -> None:
    response = client.get("/api/v1/posts")
    assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}


def test_invalid_token_is_rejected(client) -> None:
    response = client.get("/api/v1/posts", headers={"Authorization": "Bearer garbage"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_expired_token_is_rejected(client) -> None:
    token = create_access_token(ALICE, expires_delta=timedelta(minutes=-5))
    response = client.get("/api/v1/posts", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "Access token has expired"


def test_connection_failure_is_a_dismissable_notice(client, backend, auth_token, mocker) -> None:
    mocker.patch.object(backend, "query", side_effect=BackendConnectionError("platform down"))

    response = client.get("/api/v1/posts", headers=auth_token)

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json() == {
        "detail": "platform down",
        "kind": "connection",
        "dismissable": True,
    }


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (BackendConnectionError("x"), status.HTTP_503_SERVICE_UNAVAILABLE),
        (AuthError("x"), status.HTTP_401_UNAUTHORIZED),
        (ForbiddenError("x"), status.HTTP_403_FORBIDDEN),
        (ConstraintError("x"), status.HTTP_409_CONFLICT),
        (DuplicateMutationError("x"), status.HTTP_409_CONFLICT),
        (RecordNotFoundError("x"), status.HTTP_404_NOT_FOUND),
        (StorageError("x"), status.HTTP_502_BAD_GATEWAY),
        (BackendError("x"), status.HTTP_500_INTERNAL_SERVER_ERROR),
    ],
)
def test_status_for_each_kind(error, expected) -> None:
    assert status_for(error) == expected


def test_every_kind_has_a_status() -> None:
    kinds = {
        cls.kind
        for cls in (
            AuthError,
            BackendConnectionError,
            ConstraintError,
            DuplicateMutationError,
            ForbiddenError,
            RecordNotFoundError,
            StorageError,
        )
    }
    assert kinds == set(STATUS_BY_KIND)


@pytest.mark.asyncio
async def test_error_handler_refuses_foreign_exceptions(mocker) -> None:
    with pytest.raises(TypeError, match="ValueError"):
        await backend_error_handler(mocker.Mock(), ValueError("boom"))


@pytest.mark.asyncio
async def test_error_handler_renders_notice(mocker) -> None:
    response = await backend_error_handler(mocker.Mock(), StorageError("bucket full"))

    assert response.status_code == status.HTTP_502_BAD_GATEWAY
    assert response.body == b'{"detail":"bucket full","kind":"storage","dismissable":true}'
