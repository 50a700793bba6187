"""Tests for bearer token authentication."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from peachrecon.core.security import JWT_ALGORITHM, create_access_token, decode_access_token
from tests.factories import ReconciliationFactory


def _token(**claims) -> str:
    payload = {
        "sub": "3f1c9a52-reviewer",
        "email": "reviewer@peachhaus.test",
        "role": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    payload.update(claims)
    return create_access_token(payload)


class TestTokenDecoding:
    def test_valid_token(self):
        claims = decode_access_token(_token())

        assert claims["sub"] == "3f1c9a52-reviewer"
        assert claims["aud"] == "authenticated"

    def test_expired_token(self):
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_access_token(_token(exp=datetime.now(timezone.utc) - timedelta(minutes=1)))

    def test_wrong_secret(self):
        forged = jwt.encode(
            {"sub": "x", "aud": "authenticated", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            "not-the-secret",
            algorithm=JWT_ALGORITHM,
        )

        with pytest.raises(jwt.InvalidSignatureError):
            decode_access_token(forged)

    def test_missing_subject(self):
        token = create_access_token({"exp": datetime.now(timezone.utc) + timedelta(hours=1)})

        with pytest.raises(jwt.MissingRequiredClaimError):
            decode_access_token(token)


class TestBearerAuth:
    """get_current_actor through a real endpoint."""

    @pytest.mark.asyncio
    async def test_no_header(self, unauthenticated_client):
        response = await unauthenticated_client.get("/reconciliations/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 401
        assert response.json() == {"error": "No authorization header", "code": "UNAUTHORIZED"}

    @pytest.mark.asyncio
    async def test_invalid_token(self, unauthenticated_client):
        response = await unauthenticated_client.get(
            "/reconciliations/00000000-0000-0000-0000-000000000000",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    @pytest.mark.asyncio
    async def test_valid_token_acts_as_subject(self, unauthenticated_client, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)

        response = await unauthenticated_client.get(
            f"/reconciliations/{rec.id}",
            headers={"Authorization": f"Bearer {_token()}"},
        )

        assert response.status_code == 200
        assert response.json()["id"] == str(rec.id)

    @pytest.mark.asyncio
    async def test_finalize_records_token_subject(self, unauthenticated_client, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)
        headers = {"Authorization": f"Bearer {_token(sub='owner-ops-42')}"}

        await unauthenticated_client.post(
            "/finalize-reconciliation", json={"reconciliation_id": str(rec.id)}, headers=headers
        )
        response = await unauthenticated_client.get(f"/reconciliations/{rec.id}/audit-log", headers=headers)

        assert response.json()[0]["user_id"] == "owner-ops-42"

    @pytest.mark.asyncio
    async def test_health_is_public(self, unauthenticated_client):
        response = await unauthenticated_client.get("/health")

        assert response.status_code == 200
