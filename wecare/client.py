# wecare/client.py
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import httpx


@dataclass(frozen=True)
class Credentials:
    token: str

    def header(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}


class ApiError(Exception):
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")


class WeCareClient:
    """Thin HTTP client for the WeCare API.

    The client holds no token. Calls that need authentication take a
    ``Credentials`` argument, so concurrent users never share a header.
    """

    def __init__(self, base_url: str, timeout: float = 15.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self._http = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _send(self, method: str, path: str, creds: Optional[Credentials] = None, **kwargs):
        headers = {"Accept": "application/json"}
        if creds:
            headers.update(creds.header())
        r = self._http.request(method, path, headers=headers, **kwargs)
        if r.status_code >= 400:
            try:
                detail = r.json().get("detail", r.text)
            except ValueError:
                detail = r.text
            raise ApiError(r.status_code, str(detail))
        return r.json()

    # Auth
    def register(self, name: str, email: str, password: str, role: str, phone: str = "", **location):
        body = {"name": name, "email": email, "password": password, "role": role, "phone": phone, **location}
        data = self._send("POST", "/auth/register", json=body)
        return Credentials(data["token"]), data["user"]

    def login(self, email: str, password: str):
        data = self._send("POST", "/auth/login", json={"email": email, "password": password})
        return Credentials(data["token"]), data["user"]

    # Donations
    def create_donation(self, creds: Credentials, title: str, description: str, category_id: str,
                        latitude: float, longitude: float,
                        images: Sequence[Tuple[str, bytes, str]]) -> str:
        """``images`` is a list of (filename, content, mime type)."""
        form = {"title": title, "description": description, "category_id": category_id,
                "latitude": str(latitude), "longitude": str(longitude)}
        files = [("images", img) for img in images]
        return self._send("POST", "/donations", creds, data=form, files=files)["id"]

    def list_donations(self):
        return self._send("GET", "/donations")

    def get_donation(self, donation_id: str):
        return self._send("GET", f"/donations/{donation_id}")

    def accept(self, creds: Credentials, donation_id: str):
        return self._send("PUT", f"/donations/{donation_id}/accept", creds)

    def complete(self, creds: Credentials, donation_id: str):
        return self._send("PUT", f"/donations/{donation_id}/complete", creds)

    def delete(self, creds: Credentials, donation_id: str):
        return self._send("DELETE", f"/donations/{donation_id}", creds)

    # Matching
    def match(self, creds: Credentials, user_id: str):
        return self._send("GET", f"/ai/match/{user_id}", creds)["matches"]
