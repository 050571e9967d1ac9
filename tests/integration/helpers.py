from httpx import AsyncClient

from haven_auth.api.utils.request_context import CSRF_COOKIE, CSRF_HEADER

PASSWORD = "SecurePass123!"


async def login(client: AsyncClient, email: str, password: str = PASSWORD) -> dict:
    response = await client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    # Tests authenticate with the bearer header unless they exercise cookies
    client.cookies.clear()
    return response.json()


async def signup(client: AsyncClient, email: str, organization_name: str = "Acme Housing") -> dict:
    response = await client.post(
        "/auth/signup",
        json={"email": email, "password": PASSWORD, "organization_name": organization_name},
    )
    assert response.status_code == 201, response.text
    client.cookies.clear()
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def csrf_headers(client: AsyncClient) -> dict:
    return {CSRF_HEADER: client.cookies.get(CSRF_COOKIE)}
