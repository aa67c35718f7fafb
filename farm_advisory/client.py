# farm_advisory/client.py
"""
Typed client for the crop-facing part of the API.

Authentication state lives in an explicit `Session` value: `login` returns
one, `validate` refreshes it when an app starts, and `logout` ends it. Every
data call takes the session as an argument, so there is no ambient token.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx


class ApiError(Exception):
    """Any non-2xx response. Callers must treat the request as not applied."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


@dataclass(frozen=True)
class Session:
    access_token: str
    user_id: Optional[str] = None
    email: Optional[str] = None

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


class FarmApiClient:
    def __init__(self, http: httpx.Client, prefix: str = "/api"):
        # any httpx.Client works, including FastAPI's TestClient
        self._http = http
        self._prefix = prefix.rstrip("/")

    def _request(self, method: str, path: str, session: Optional[Session] = None, **kwargs) -> Dict[str, Any]:
        headers = session.headers if session else {}
        resp = self._http.request(method, f"{self._prefix}{path}", headers=headers, **kwargs)
        if not resp.is_success:
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("detail"):
                message = body["detail"]
            else:
                message = resp.text or resp.reason_phrase
            raise ApiError(resp.status_code, str(message))
        return resp.json()

    # ---------- session lifecycle ----------

    def signup(self, email: str, password: str, name: str, farm_size: Any = None, location: Optional[str] = None) -> Dict[str, Any]:
        body = {"email": email, "password": password, "name": name, "farmSize": farm_size, "location": location}
        return self._request("POST", "/signup", json=body)["user"]

    def login(self, email: str, password: str) -> Session:
        data = self._request("POST", "/login", json={"email": email, "password": password})
        user = data.get("user") or {}
        return Session(access_token=data["access_token"], user_id=user.get("id"), email=user.get("email"))

    def validate(self, session: Optional[Session]) -> Optional[Session]:
        """Re-check a stored session; None means it must be discarded."""
        if session is None:
            return None
        try:
            data = self._request("GET", "/profile", session)
        except ApiError as e:
            if e.status_code == 401:
                return None
            raise
        return Session(access_token=session.access_token, user_id=session.user_id, email=data.get("email"))

    def logout(self, session: Session) -> None:
        try:
            self._request("POST", "/logout", session)
        except ApiError as e:
            # already expired or revoked server-side
            if e.status_code != 401:
                raise

    def profile(self, session: Session) -> Dict[str, Any]:
        return self._request("GET", "/profile", session)

    # ---------- crops ----------

    def list_crops(self, session: Optional[Session]) -> List[Dict[str, Any]]:
        return self._request("GET", "/crops", session)["crops"]

    def create_crop(self, session: Session, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/crops", session, json=fields)["crop"]

    def update_crop(self, session: Session, crop_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/crops/{crop_id}", session, json=fields)["crop"]

    def delete_crop(self, session: Session, crop_id: str) -> None:
        self._request("DELETE", f"/crops/{crop_id}", session)

    # ---------- advisory ----------

    def recommendations(self, session: Session, location: str, season: str, soil_type: str) -> List[Dict[str, Any]]:
        body = {"location": location, "season": season, "soilType": soil_type}
        return self._request("POST", "/recommendations", session, json=body)["recommendations"]

    def consultation(self, session: Session, question: str, category: str, urgency: str) -> Dict[str, Any]:
        body = {"question": question, "category": category, "urgency": urgency}
        return self._request("POST", "/consultation", session, json=body)["consultation"]
