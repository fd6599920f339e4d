"""
HTTP client for the travel journal API.

Every call from the terminal UI goes through TravelJournalClient. The access
token is attached as a bearer header and kept in a small session file so a
restarted client stays signed in; a 401 clears it.
"""

import json
import mimetypes
import os
import shutil
import tempfile
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import requests

DEFAULT_API_URL = os.getenv("TRAVEL_JOURNAL_API", "http://localhost:8000")
DEFAULT_SESSION_FILE = Path.home() / ".travel_journal" / "session.json"
REQUEST_TIMEOUT = 15
PLACEHOLDER_IMAGE_PATH = "/assets/placeholder.png"


class ApiError(Exception):
    """Error response (or transport failure, status_code 0) from the API"""

    def __init__(self, message: str, status_code: int = 0):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class SessionExpiredError(ApiError):
    """The API rejected the stored token; the user must log in again"""

    def __init__(self, message: str = "Session expired. Please log in again."):
        super().__init__(message, status_code=401)


def to_millis(value: Union[datetime, date, int]) -> int:
    """Epoch milliseconds for a datetime, a date (UTC midnight) or an int"""
    if isinstance(value, bool):
        raise TypeError("expected a date, datetime or milliseconds")
    if isinstance(value, int):
        return value
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min, tzinfo=timezone.utc)
    else:
        raise TypeError("expected a date, datetime or milliseconds")
    return int(dt.timestamp() * 1000)


class TravelJournalClient:
    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        session_file: Optional[Path] = DEFAULT_SESSION_FILE,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session_file = Path(session_file) if session_file else None
        self.http = http or requests.Session()
        self.token: Optional[str] = self._load_token()

    # ---------------------- session state ----------------------

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def placeholder_image_url(self) -> str:
        return f"{self.base_url}{PLACEHOLDER_IMAGE_PATH}"

    def _load_token(self) -> Optional[str]:
        if not self.session_file or not self.session_file.exists():
            return None
        try:
            with open(self.session_file, "r", encoding="utf-8") as f:
                return json.load(f).get("token")
        except (json.JSONDecodeError, OSError):
            return None

    def _save_token(self, token: str) -> None:
        self.token = token
        if not self.session_file:
            return
        self.session_file.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=str(self.session_file.parent), delete=False, encoding="utf-8"
        ) as tf:
            json.dump({"token": token}, tf)
            temp_path = Path(tf.name)
        try:
            shutil.move(str(temp_path), str(self.session_file))
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def clear_session(self) -> None:
        self.token = None
        if self.session_file and self.session_file.exists():
            self.session_file.unlink()

    # ---------------------- transport ----------------------

    def _request(self, method: str, path: str, auth: bool = True, **kwargs) -> Dict[str, Any]:
        headers = kwargs.pop("headers", {})
        if auth and self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self.http.request(
                method, f"{self.base_url}{path}", headers=headers, timeout=REQUEST_TIMEOUT, **kwargs
            )
        except requests.RequestException as e:
            raise ApiError(f"Could not reach the server: {e}")

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code == 401 and auth:
            self.clear_session()
            raise SessionExpiredError()
        if response.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise ApiError(message or "An unexpected error occurred. Please try again.", response.status_code)
        return data if isinstance(data, dict) else {}

    # ---------------------- auth ----------------------

    def create_account(self, full_name: str, email: str, password: str) -> Dict[str, Any]:
        data = self._request(
            "POST",
            "/create-account",
            auth=False,
            json={"fullName": full_name, "email": email, "password": password},
        )
        if data.get("accessToken"):
            self._save_token(data["accessToken"])
        return data.get("user", {})

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self._request("POST", "/login", auth=False, json={"email": email, "password": password})
        if data.get("accessToken"):
            self._save_token(data["accessToken"])
        return data.get("user", {})

    def logout(self) -> None:
        self.clear_session()

    def get_user(self) -> Dict[str, Any]:
        return self._request("GET", "/get-user").get("user", {})

    # ---------------------- stories ----------------------

    def add_story(
        self,
        title: str,
        story: str,
        visited_location: str,
        image_url: str,
        visited_date: Union[datetime, date, int],
    ) -> Dict[str, Any]:
        payload = {
            "title": title,
            "story": story,
            "visitedLocation": visited_location,
            "imageUrl": image_url,
            "visitedDate": to_millis(visited_date),
        }
        return self._request("POST", "/add-travel-story", json=payload).get("story", {})

    def get_all_stories(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/get-all-stories").get("stories", [])

    def edit_story(
        self,
        story_id: str,
        title: str,
        story: str,
        visited_location: str,
        image_url: Optional[str],
        visited_date: Union[datetime, date, int],
    ) -> Dict[str, Any]:
        payload = {
            "title": title,
            "story": story,
            "visitedLocation": visited_location,
            "imageUrl": image_url,
            "visitedDate": to_millis(visited_date),
        }
        return self._request("PUT", f"/edit-story/{story_id}", json=payload).get("story", {})

    def delete_story(self, story_id: str) -> bool:
        """True when deleted; False when the server reported it missing"""
        data = self._request("DELETE", f"/delete-story/{story_id}")
        return not data.get("error", False)

    def update_is_favourite(self, story_id: str, is_favourite: bool) -> Dict[str, Any]:
        data = self._request("PUT", f"/update-is-favourite/{story_id}", json={"isFavourite": is_favourite})
        return data.get("story", {})

    def search(self, query: str) -> List[Dict[str, Any]]:
        return self._request("GET", "/search", params={"query": query}).get("stories", [])

    def filter_by_date(
        self, start: Union[datetime, date, int], end: Union[datetime, date, int]
    ) -> List[Dict[str, Any]]:
        params = {"startDate": to_millis(start), "endDate": to_millis(end)}
        return self._request("GET", "/travel-stories/filter", params=params).get("stories", [])

    # ---------------------- media ----------------------

    def upload_image(self, file_path: Union[str, Path]) -> str:
        path = Path(file_path)
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        try:
            with open(path, "rb") as f:
                data = self._request(
                    "POST", "/image-upload", auth=False, files={"image": (path.name, f, mime_type)}
                )
        except OSError as e:
            raise ApiError(f"Could not read {path}: {e.strerror or e}")
        return data["imageUrl"]

    def delete_image(self, image_url: str) -> bool:
        data = self._request("DELETE", "/delete-image", auth=False, params={"imageUrl": image_url})
        return not data.get("error", False)
