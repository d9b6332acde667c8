"""
System test: full API flow in-process with SQLite.

Covers health, auth, the authorization gate, product ingestion with images
and the prediction proxy. The object store and prediction service are
replaced by in-memory doubles (see tests/doubles.py).
"""

import asyncio
from datetime import timedelta

import httpx
import pytest

from agritrack.kernel.models import Commodity, ProductCategory
from tests.doubles import access_denied

pytestmark = pytest.mark.asyncio


def product_form(product_id: str = "P-100") -> dict:
    return {
        "productId": product_id,
        "productName": "Shallot",
        "productOrigin": "Brebes",
        "productCategory": "Vegetables",
        "productComposition": "100% shallot",
        "nutritionFacts": "72 kcal per 100g",
    }


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Request-ID"]


async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "trace-123"})

    assert response.headers["X-Request-ID"] == "trace-123"


async def test_unsafe_request_id_is_replaced(client):
    response = await client.get("/health", headers={"X-Request-ID": "bad id <script>"})

    assert response.headers["X-Request-ID"] != "bad id <script>"


async def test_error_body_carries_request_id(client):
    response = await client.get("/products/product/missing", headers={"X-Request-ID": "trace-404"})

    assert response.status_code == 404
    assert response.json() == {
        "error": "Product not found",
        "code": "not_found",
        "request_id": "trace-404",
    }


class TestAuthFlow:

    async def test_signup_then_login(self, client, token_service):
        signup = await client.post("/auth/signup", json={
            "name": "Siti",
            "email": "siti@example.com",
            "password": "Rahasia123",
            "role": "Farmer",
        })
        assert signup.status_code == 200
        assert token_service.verify(signup.json()["token"]).email == "siti@example.com"

        login = await client.post("/auth/login", json={
            "email": "siti@example.com",
            "password": "Rahasia123",
        })
        assert login.status_code == 200
        body = login.json()
        assert body["role"] == "Farmer"
        assert token_service.verify(body["token"]).role == "Farmer"

    async def test_duplicate_signup(self, client, test_user):
        response = await client.post("/auth/signup", json={
            "name": "Again",
            "email": test_user.email,
            "password": "whatever",
            "role": "Farmer",
        })

        assert response.status_code == 401
        assert response.json()["code"] == "already_exists"

    async def test_signup_missing_field(self, client):
        response = await client.post("/auth/signup", json={"email": "x@example.com", "password": "p"})

        assert response.status_code == 422
        assert response.json()["code"] == "validation_failed"

    async def test_login_failures_are_indistinguishable(self, client, test_user):
        unknown = await client.post("/auth/login", json={
            "email": "nobody@example.com",
            "password": "TestPassword123",
        })
        wrong = await client.post("/auth/login", json={
            "email": test_user.email,
            "password": "WrongPassword",
        })

        assert unknown.status_code == wrong.status_code == 401
        unknown_body = unknown.json()
        wrong_body = wrong.json()
        unknown_body.pop("request_id")
        wrong_body.pop("request_id")
        assert unknown_body == wrong_body
        assert "token" not in wrong_body

    async def test_logout_revokes_token(self, client, auth_headers):
        before = await client.get("/forecast/get-allTypes", headers=auth_headers)
        assert before.status_code == 200

        logout = await client.get("/auth/logout", headers=auth_headers)
        assert logout.status_code == 200
        assert logout.json()["message"] == "You have been logged out."

        after = await client.get("/forecast/get-allTypes", headers=auth_headers)
        assert after.status_code == 401
        assert after.json()["code"] == "invalid"

    async def test_logout_without_token(self, client):
        response = await client.get("/auth/logout")

        assert response.status_code == 200


class TestAuthorizationGate:

    async def test_missing_token(self, client, prediction_spy):
        response = await client.post("/forecast/predict", json={"commodityType": "Beras Medium"})

        assert response.status_code == 401
        assert response.json()["code"] == "missing"
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert prediction_spy.call_count == 0

    @pytest.mark.parametrize("header", ["Bearer not-a-jwt", "Basic dXNlcjpwYXNz", "Bearer"])
    async def test_malformed_token(self, client, header):
        response = await client.get("/forecast/get-allTypes", headers={"Authorization": header})

        assert response.status_code == 401
        assert response.json()["code"] == "invalid"

    async def test_expired_token(self, client, token_service, test_user, s3_client):
        token = token_service.issue(
            test_user.id, test_user.email, test_user.role,
            expires_delta=timedelta(seconds=-1),
        )

        response = await client.post(
            "/products/post-products",
            data=product_form(),
            files={"image": ("a.png", b"png", "image/png")},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401
        assert response.json()["code"] == "expired"
        assert s3_client.calls == []


class TestProducts:

    async def test_create_with_image(self, client, auth_headers, s3_client, test_user):
        response = await client.post(
            "/products/post-products",
            data=product_form(),
            files={"image": ("shallot.jpg", b"\xff\xd8jpeg-bytes", "image/jpeg")},
            headers=auth_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["productId"] == "P-100"
        assert s3_client.body_at(body["imageUrl"]) == b"\xff\xd8jpeg-bytes"
        assert s3_client.calls[0]["ACL"] == "public-read"

        stored = await client.get("/products/product/P-100")
        assert stored.status_code == 200
        product = stored.json()
        assert product["owner_email"] == test_user.email
        assert product["image_url"] == body["imageUrl"]
        assert product["product_origin"] == "Brebes"

    async def test_owner_comes_from_token(self, client, auth_headers, test_user):
        form = product_form("P-101")
        form["ownerEmail"] = "someone-else@example.com"

        response = await client.post("/products/post-products", data=form, headers=auth_headers)

        assert response.status_code == 201
        product = (await client.get("/products/product/P-101")).json()
        assert product["owner_email"] == test_user.email

    async def test_create_json_without_image(self, client, auth_headers, s3_client):
        response = await client.post("/products/post-products", json=product_form("P-102"), headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["imageUrl"] == ""
        assert s3_client.calls == []

    async def test_store_failure_leaves_no_record(self, client, auth_headers, s3_client):
        s3_client.fail_with = access_denied()

        response = await client.post(
            "/products/post-products",
            data=product_form("P-103"),
            files={"image": ("a.png", b"png", "image/png")},
            headers=auth_headers,
        )

        assert response.status_code == 502
        assert response.json()["code"] == "artifact_store_failure"
        assert (await client.get("/products/product/P-103")).status_code == 404

    async def test_duplicate_product(self, client, auth_headers):
        first = await client.post("/products/post-products", json=product_form("P-104"), headers=auth_headers)
        second = await client.post("/products/post-products", json=product_form("P-104"), headers=auth_headers)

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["code"] == "conflict"

    async def test_missing_required_field(self, client, auth_headers, s3_client):
        form = product_form("P-105")
        del form["productName"]

        response = await client.post(
            "/products/post-products",
            data=form,
            files={"image": ("a.png", b"png", "image/png")},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["code"] == "validation_failed"
        assert s3_client.calls == []

    async def test_unexpected_file_field(self, client, auth_headers):
        response = await client.post(
            "/products/post-products",
            data=product_form("P-106"),
            files={"document": ("a.pdf", b"pdf", "application/pdf")},
            headers=auth_headers,
        )

        assert response.status_code == 422

    @pytest.mark.parametrize(
        "product_id, field, filename, expected",
        [
            ("P-110", "image", "shallot.jpg", 201),
            ("P-111", "document", "a.pdf", 422),
        ],
    )
    async def test_uploaded_files_are_closed(
        self, client, auth_headers, monkeypatch, product_id, field, filename, expected
    ):
        from starlette.datastructures import UploadFile

        closed = []
        original_close = UploadFile.close

        async def recording_close(self):
            closed.append(self.filename)
            await original_close(self)

        monkeypatch.setattr(UploadFile, "close", recording_close)

        response = await client.post(
            "/products/post-products",
            data=product_form(product_id),
            files={field: (filename, b"bytes", "application/octet-stream")},
            headers=auth_headers,
        )

        assert response.status_code == expected
        assert filename in closed

    async def test_edit_product(self, client, auth_headers, test_user):
        await client.post("/products/post-products", json=product_form("P-107"), headers=auth_headers)

        response = await client.put(
            "/products/edit-product/P-107",
            json={"productName": "Red Shallot", "nutritionFacts": "80 kcal"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Product updated successfully"
        product = (await client.get("/products/product/P-107")).json()
        assert product["product_name"] == "Red Shallot"
        assert product["nutrition_facts"] == "80 kcal"
        assert product["product_origin"] == "Brebes"
        assert product["owner_email"] == test_user.email

    async def test_edit_missing_product(self, client, auth_headers):
        response = await client.put(
            "/products/edit-product/nope",
            json={"productName": "X"},
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    async def test_edit_requires_token(self, client):
        response = await client.put("/products/edit-product/P-107", json={"productName": "X"})

        assert response.status_code == 401

    async def test_list_products_and_categories(self, client, auth_headers, db_session):
        db_session.add_all([ProductCategory(category_name="Vegetables"), ProductCategory(category_name="Grains")])
        await db_session.commit()
        await client.post("/products/post-products", json=product_form("P-108"), headers=auth_headers)

        products = await client.get("/products")
        categories = await client.get("/products/get-products-categories")

        assert [p["product_id"] for p in products.json()] == ["P-108"]
        assert [c["category_name"] for c in categories.json()] == ["Grains", "Vegetables"]


class TestForecast:

    async def test_get_all_types(self, client, auth_headers, db_session):
        db_session.add_all([Commodity(commodity_type="Beras Medium"), Commodity(commodity_type="Bawang Merah")])
        await db_session.commit()

        response = await client.get("/forecast/get-allTypes", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "commodities": [
                {"commodityType": "Bawang Merah"},
                {"commodityType": "Beras Medium"},
            ]
        }

    async def test_get_all_types_hides_unknown_labels(self, client, auth_headers, db_session, prediction_spy):
        db_session.add_all([Commodity(commodity_type="Beras Medium"), Commodity(commodity_type="Kacang Hijau")])
        await db_session.commit()

        listed = await client.get("/forecast/get-allTypes", headers=auth_headers)
        labels = [item["commodityType"] for item in listed.json()["commodities"]]

        assert labels == ["Beras Medium"]
        for label in labels:
            response = await client.post("/forecast/predict", json={"commodityType": label}, headers=auth_headers)
            assert response.status_code == 200

    async def test_predict(self, client, auth_headers, prediction_spy):
        response = await client.post(
            "/forecast/predict",
            json={"commodityType": "Beras Medium"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"predictionData": [1500.0, 1510.5, 1498.25]}
        assert prediction_spy.requests[0].url.raw_path == b"/predictions/predict/Beras%20Medium"

    async def test_predict_unknown_commodity(self, client, auth_headers, prediction_spy):
        response = await client.post(
            "/forecast/predict",
            json={"commodityType": "NotARealCategory"},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["code"] == "validation_failed"
        assert prediction_spy.call_count == 0

    async def test_predict_upstream_error(self, client, auth_headers, prediction_spy):
        prediction_spy.handler = lambda request: httpx.Response(500, text="Internal Server Error")

        response = await client.post(
            "/forecast/predict",
            json={"commodityType": "Beras Medium"},
            headers=auth_headers,
        )

        assert response.status_code == 502
        body = response.json()
        assert body["code"] == "upstream_error"
        assert body["upstream_status"] == 500

    async def test_predict_upstream_unreachable(self, client, auth_headers, prediction_spy):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        prediction_spy.handler = refuse

        response = await client.post(
            "/forecast/predict",
            json={"commodityType": "Beras Medium"},
            headers=auth_headers,
        )

        assert response.status_code == 503
        assert response.json()["code"] == "upstream_unavailable"

    async def test_predict_upstream_timeout(self, client, auth_headers, prediction_client, prediction_spy):
        async def stall(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json=[])

        prediction_spy.handler = stall
        prediction_client.timeout_seconds = 0.05

        response = await client.post(
            "/forecast/predict",
            json={"commodityType": "Beras Medium"},
            headers=auth_headers,
        )

        assert response.status_code == 503


async def test_unhandled_error_keeps_cors_headers(client, auth_headers):
    from agritrack.engines.forecast.prediction_client import get_prediction_client
    from agritrack.main import app

    def broken_client():
        raise RuntimeError("prediction client is not initialized")

    app.dependency_overrides[get_prediction_client] = broken_client

    response = await client.post(
        "/forecast/predict",
        json={"commodityType": "Beras Medium"},
        headers={**auth_headers, "Origin": "http://localhost:3000", "X-Request-ID": "trace-500"},
    )

    assert response.status_code == 500
    assert response.json() == {
        "error": "Internal Server Error",
        "code": "internal_error",
        "request_id": "trace-500",
    }
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert "not initialized" not in response.text


async def test_revocation_lookup_failure_is_storage_failure(client, auth_headers, monkeypatch):
    from sqlalchemy.exc import OperationalError

    from agritrack.kernel.identity.identity_service import IdentityService

    async def database_down(self, token_id):
        raise OperationalError("SELECT jti FROM revoked_tokens", {}, Exception("database is locked"))

    monkeypatch.setattr(IdentityService, "is_revoked", database_down)

    response = await client.get("/forecast/get-allTypes", headers=auth_headers)

    assert response.status_code == 500
    assert response.json()["code"] == "storage_failure"
    assert "locked" not in response.text
